"""
Report endpoints - submission, visibility-scoped reads and the resolution workflow.

Workflow errors (400/403/404/409) are raised by the service layer and turned
into responses by the WorkflowError handler in app.main.

Handlers are plain functions: the service does blocking Firestore, storage
and notification calls, so FastAPI runs them in its threadpool instead of on
the event loop.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.models.report import RejectRequest, Report, ReportCreate
from app.models.user import Actor
from app.services.report_service import ReportWorkflowService, get_report_service
from app.services.storage import PhotoUpload
from app.utils.security import get_current_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def _read_upload(upload: Optional[UploadFile]) -> Optional[PhotoUpload]:
    """Read an upload into memory; storing it is up to the service."""
    if upload is None or not upload.filename:
        return None
    return PhotoUpload(content=upload.file.read(), filename=upload.filename, content_type=upload.content_type)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Report)
def submit_report(
    photo: Optional[UploadFile] = File(None, description="Evidence photo (required)"),
    first_name: Optional[str] = Form(None),
    middle_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    contact: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    display_location: Optional[str] = Form(None),
    user_location: Optional[str] = Form(None),
    landmark: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    actor: Actor = Depends(get_current_actor),
    service: ReportWorkflowService = Depends(get_report_service),
):
    """
    Submit a new report with photo evidence.

    The report starts as Pending and is owned by the caller. If user_location
    is omitted it is taken from the caller's profile.
    """
    logger.info(f"📝 POST /reports by {actor.id}")

    data = ReportCreate(
        first_name=first_name,
        middle_name=middle_name,
        last_name=last_name,
        name=name,
        contact=contact,
        description=description,
        display_location=display_location,
        user_location=user_location,
        landmark=landmark,
        latitude=latitude,
        longitude=longitude,
    )
    return service.create_report(actor, data, photo=_read_upload(photo))


@router.get("", response_model=List[Report])
def get_reports(
    actor: Actor = Depends(get_current_actor),
    service: ReportWorkflowService = Depends(get_report_service),
):
    """
    List reports visible to the caller.

    - superadmin: all reports
    - admin: reports from the admin's location (403 if none configured)
    - user: own reports
    """
    return service.list_reports(actor)


@router.get("/{report_id}", response_model=Report)
def get_report(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ReportWorkflowService = Depends(get_report_service),
):
    return service.get_report(actor, report_id)


@router.put("/{report_id}/status", response_model=Report)
def update_report_status(
    report_id: str,
    status_value: str = Form(..., alias="status"),
    note: Optional[str] = Form(None),
    resolution_photo: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
    service: ReportWorkflowService = Depends(get_report_service),
):
    """
    Change a report's status.

    Moving to Pending Confirmation (admins only) accepts an optional
    resolution photo, redacts the report's PII and notifies the reporter.
    The photo is stored only if that transition is accepted.
    """
    return service.update_status(
        actor,
        report_id,
        status_value,
        note=note,
        resolution_photo=_read_upload(resolution_photo),
    )


@router.put("/{report_id}/confirm", response_model=Report)
def confirm_report(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ReportWorkflowService = Depends(get_report_service),
):
    """Reporter confirms the issue is resolved; awards resolution points."""
    return service.confirm_resolution(actor, report_id)


@router.put("/{report_id}/reject", response_model=Report)
def reject_report(
    report_id: str,
    request: Optional[RejectRequest] = None,
    actor: Actor = Depends(get_current_actor),
    service: ReportWorkflowService = Depends(get_report_service),
):
    """Reporter rejects the proposed resolution; the report goes back to On Going."""
    return service.reject_resolution(actor, report_id, request.reason if request else None)
