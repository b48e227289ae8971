"""
Authorization rules for the report workflow.

One predicate decides every action from (actor role, actor id, report owner,
admin location, report user_location). Routes and the workflow engine call
authorize() instead of comparing roles themselves.
"""

from enum import Enum
from typing import Optional
import logging

from pydantic import BaseModel

from app.core.errors import ForbiddenError
from app.models.user import Actor, Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    VIEW = "view"
    SET_ON_GOING = "set_on_going"
    MARK_PENDING_CONFIRMATION = "mark_pending_confirmation"
    ADMIN_RESOLVE = "admin_resolve"
    CONFIRM = "confirm"
    REJECT = "reject"
    AUTO_RESOLVE = "auto_resolve"
    MIGRATE = "migrate"


class VisibilityScope(BaseModel):
    """Store filter for the reports an actor may list. Both None means everything."""
    reporter_id: Optional[str] = None
    user_location: Optional[str] = None


def _admin_covers(actor: Actor, report_user_location: Optional[str]) -> bool:
    if actor.role == Role.SUPERADMIN:
        return True
    return actor.role == Role.ADMIN and bool(actor.location) and actor.location == report_user_location


def is_allowed(
    action: Action,
    actor: Actor,
    owner_id: Optional[str] = None,
    report_user_location: Optional[str] = None,
) -> bool:
    """Pure allow/deny decision for one action on one report."""
    if not actor.is_active:
        return False

    is_owner = owner_id is not None and actor.id == owner_id

    if action == Action.AUTO_RESOLVE:
        return actor.role == Role.SYSTEM
    if actor.role == Role.SYSTEM:
        return False

    if action in (Action.CONFIRM, Action.REJECT):
        return is_owner
    if action == Action.MIGRATE:
        return actor.role == Role.SUPERADMIN
    if action in (Action.MARK_PENDING_CONFIRMATION, Action.ADMIN_RESOLVE):
        return _admin_covers(actor, report_user_location)
    if action in (Action.SET_ON_GOING, Action.VIEW):
        return is_owner or _admin_covers(actor, report_user_location)
    return False


def authorize(
    action: Action,
    actor: Actor,
    owner_id: Optional[str] = None,
    report_user_location: Optional[str] = None,
) -> None:
    """Raise ForbiddenError unless the actor may perform the action."""
    if not is_allowed(action, actor, owner_id, report_user_location):
        logger.info(f"Denied {action.value} for actor {actor.id} (role={actor.role.value})")
        if not actor.is_active:
            raise ForbiddenError("Account is deactivated")
        raise ForbiddenError(f"Not permitted to {action.value.replace('_', ' ')} this report")


def visibility_scope(actor: Actor) -> VisibilityScope:
    """
    Reports an actor may list.

    - superadmin: everything
    - admin: reports whose user_location equals the admin's location; an admin
      without a location is refused so the misconfiguration is visible
    - user: their own reports
    """
    if not actor.is_active:
        raise ForbiddenError("Account is deactivated")
    if actor.role == Role.SUPERADMIN:
        return VisibilityScope()
    if actor.role == Role.ADMIN:
        if not actor.location:
            raise ForbiddenError("Admin account has no location configured; contact a superadmin")
        return VisibilityScope(user_location=actor.location)
    if actor.role == Role.USER:
        return VisibilityScope(reporter_id=actor.id)
    raise ForbiddenError("This actor cannot list reports")
