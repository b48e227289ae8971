"""
PII redaction policy.

Redaction nulls the complainant's name fields, contact and free-text
description. Location, photos and the reporter_id relation are kept.
It is applied when a report enters Pending Confirmation and by the legacy
backfill for resolved reports. Nothing ever writes these fields back.
"""

from typing import Optional

from app.models.report import PII_FIELDS, Report


def build_display_name(
    first_name: Optional[str] = None,
    middle_name: Optional[str] = None,
    last_name: Optional[str] = None,
    name: Optional[str] = None,
) -> Optional[str]:
    """
    Join the structured name parts with spaces, falling back to the raw name.

    >>> build_display_name("Maria", "L", "Santos")
    'Maria L Santos'
    >>> build_display_name(name="Anonymous Tipster")
    'Anonymous Tipster'
    """
    parts = [part.strip() for part in (first_name, middle_name, last_name) if part and part.strip()]
    if parts:
        return " ".join(parts)
    if name and name.strip():
        return name.strip()
    return None


def redact_pii(report: Report) -> Report:
    """
    Return a copy of the report with every PII field set to None.

    Idempotent: an already-redacted report comes back unchanged.
    """
    if not report.has_pii():
        return report
    return report.model_copy(update={field: None for field in PII_FIELDS})

