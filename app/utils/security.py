"""
Caller identity resolution.

Routes depend on get_current_actor, which verifies the Firebase ID token from
the Authorization header and loads role, location and active flag from the
caller's profile in the users collection.
"""

from typing import Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth

from app.config.firebase import initialize_firebase_app
from app.core.errors import WorkflowError
from app.core.settings import settings
from app.models.user import Actor, Role
from app.services.report_store import ReportStore, get_report_store

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Only honoured when USE_MOCK_DB=true: "Bearer dev:<user_id>"
DEV_TOKEN_PREFIX = "dev:"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> str:
    """Return the user id a token belongs to, or raise 401."""
    if settings.USE_MOCK_DB and token.startswith(DEV_TOKEN_PREFIX):
        user_id = token[len(DEV_TOKEN_PREFIX):]
        if user_id:
            return user_id

    try:
        initialize_firebase_app()
        decoded = auth.verify_id_token(token)
    except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, ValueError) as e:
        logger.info(f"Rejected ID token: {e}")
        raise _unauthorized("Token is not valid")
    return decoded["uid"]


def resolve_actor(user_id: str, store: ReportStore) -> Actor:
    """Build the Actor for a verified user id from their profile."""
    try:
        profile = store.get_user(user_id)
    except WorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if profile is None:
        # Signed in but never registered a profile: plain user, no location
        return Actor(id=user_id, role=Role.USER)
    if profile.role == Role.SYSTEM:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid account role")
    return profile.to_actor()


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: ReportStore = Depends(get_report_store),
) -> Actor:
    """
    FastAPI dependency: the verified caller, or 401.

    Synchronous so token verification and the profile read run in the threadpool.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("No token, authorization denied")
    user_id = verify_token(credentials.credentials)
    return resolve_actor(user_id, store)
