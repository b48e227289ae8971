"""
User endpoints - the caller's own profile and points balance.
"""

from fastapi import APIRouter, Depends

from app.core.errors import NotFoundError
from app.models.user import Actor, UserProfile
from app.services.report_store import ReportStore, get_report_store
from app.utils.security import get_current_actor

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfile)
def get_me(
    actor: Actor = Depends(get_current_actor),
    store: ReportStore = Depends(get_report_store),
):
    profile = store.get_user(actor.id)
    if profile is None:
        raise NotFoundError(f"No profile registered for user {actor.id}")
    return profile
