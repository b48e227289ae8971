"""
Pydantic models for citizen environmental reports.
These models handle validation for report submission, persistence and responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum


class ReportStatus(str, Enum):
    """
    Report lifecycle states.

    Values are the strings stored in Firestore and returned to clients.
    Lookup also accepts the member name ("PENDING_CONFIRMATION") and the
    compact form ("PendingConfirmation") sent by older clients.
    """
    PENDING = "Pending"
    ON_GOING = "On Going"
    PENDING_CONFIRMATION = "Pending Confirmation"
    RESOLVED = "Resolved"

    @classmethod
    def _missing_(cls, value: Any):
        if not isinstance(value, str):
            return None
        key = value.replace(" ", "").replace("_", "").lower()
        for member in cls:
            if key in (member.name.replace("_", "").lower(), member.value.replace(" ", "").lower()):
                return member
        return None


# Fields nulled by the redaction policy
PII_FIELDS = ("display_name", "first_name", "middle_name", "last_name", "name", "contact", "description")


class Report(BaseModel):
    """
    A stored report document.

    reporter_id never changes after creation. PII fields are only populated
    until the report first enters Pending Confirmation.
    """
    id: str = Field(..., description="Firestore document ID")
    reporter_id: str = Field(..., description="Owning user ID")
    status: ReportStatus = ReportStatus.PENDING

    # PII
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = None
    contact: Optional[str] = None
    description: Optional[str] = None

    # Location (never redacted)
    display_location: Optional[str] = None
    user_location: Optional[str] = Field(None, description="Reporter's registered region, used for admin scoping")
    landmark: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    # Evidence
    photo_url: str
    resolution_photo_url: Optional[str] = None

    rejection_reason: Optional[str] = None
    pending_confirmation_since: Optional[datetime] = None
    status_history: List[Dict[str, Any]] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_pii(self) -> bool:
        return any(getattr(self, field) for field in PII_FIELDS)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for Firestore (datetimes kept native, status as its value)."""
        data = self.model_dump(exclude={"id"})
        data["status"] = self.status.value
        return data

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Report":
        return cls(**{**data, "id": doc_id})


class ReportCreate(BaseModel):
    """
    Fields a reporter submits alongside the photo on POST /reports.
    """
    first_name: Optional[str] = Field(None, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, max_length=200, description="Free-form name, used when structured fields are absent")
    contact: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    display_location: Optional[str] = Field(None, max_length=500, description="Human-readable or geocoded location")
    user_location: Optional[str] = Field(None, max_length=200, description="Overrides the reporter's profile location")
    landmark: Optional[str] = Field(None, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    class Config:
        json_schema_extra = {
            "example": {
                "first_name": "Maria",
                "middle_name": "L",
                "last_name": "Santos",
                "contact": "09171234567",
                "description": "Garbage piling up beside the creek.",
                "display_location": "Brgy. San Roque, Marikina",
                "landmark": "Near the basketball court",
                "latitude": 14.6507,
                "longitude": 121.1029,
            }
        }
        extra = "ignore"


class RejectRequest(BaseModel):
    """Body of PUT /reports/{id}/reject. An empty reason is refused by the workflow."""
    reason: Optional[str] = Field(None, max_length=1000, description="Why the issue is not resolved")


class PIIMigrationResult(BaseModel):
    """Outcome of stripping PII from legacy resolved reports."""
    total: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
