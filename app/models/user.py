"""
User and actor models.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    # Internal only: the auto-resolve job. Never granted through a token.
    SYSTEM = "system"


class Actor(BaseModel):
    """Verified identity of whoever is calling a workflow operation."""
    id: str
    role: Role = Role.USER
    location: Optional[str] = None
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)


SYSTEM_ACTOR = Actor(id="system", role=Role.SYSTEM)


class UserProfile(BaseModel):
    """A document from the users collection."""
    id: str = Field(..., description="Firestore document ID")
    first_name: Optional[str] = None
    middle_initial: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    role: Role = Role.USER
    location: Optional[str] = None
    points: int = Field(default=0, ge=0)
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        extra = "ignore"

    def to_actor(self) -> Actor:
        return Actor(id=self.id, role=self.role, location=self.location, is_active=self.is_active)
