import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query, Request, status

from app.core.dependencies import get_report_service
from app.core.security import require_admin_key
from app.schemas.report import (
    ReportCreateSchema,
    ReportListResponse,
    ReportSchema,
    ReportStatsResponse,
    ReportStatus,
    ReportStatusUpdateResponse,
    ReportStatusUpdateSchema,
    ReportSubmitResponse,
)
from app.services.reports import ReporterInfo, ReportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def reporter_info(
    request: Request,
    device_id: Optional[str] = Header(default=None, alias="x-device-id"),
    firebase_id: Optional[str] = Header(default=None, alias="firebase-id"),
    app_version: Optional[str] = Header(default=None, alias="x-app-version"),
    user_agent: Optional[str] = Header(default=None, alias="user-agent"),
) -> ReporterInfo:
    """Identifies the reporter by device id, then user id, then client address."""
    client_host = request.client.host if request.client else None
    reporter_id = device_id or firebase_id or client_host or "anonymous"
    return ReporterInfo(reporter_id=reporter_id, app_version=app_version, device_info=user_agent)


@router.post(
    "",
    response_model=ReportSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report a generated message"
)
async def submit_report(
    payload: ReportCreateSchema,
    reporter: ReporterInfo = Depends(reporter_info),
    report_service: ReportService = Depends(get_report_service),
):
    report = await report_service.submit_report(payload, reporter)
    return ReportSubmitResponse(message="Report submitted successfully", report_id=report.id)


# --- Review (admin key required) ---

@router.get(
    "",
    response_model=ReportListResponse,
    dependencies=[Depends(require_admin_key)],
    summary="List reports, newest first"
)
async def list_reports(
    status_filter: Optional[ReportStatus] = Query(default=None, alias="status"),
    character_id: Optional[str] = Query(default=None, alias="characterId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    report_service: ReportService = Depends(get_report_service),
):
    return await report_service.list_reports(status_filter, character_id, page, limit)


@router.get(
    "/stats",
    response_model=ReportStatsResponse,
    dependencies=[Depends(require_admin_key)],
    summary="Report counts by status, reason and day"
)
async def report_stats(report_service: ReportService = Depends(get_report_service)):
    return await report_service.get_stats()


@router.get("/{report_id}", response_model=ReportSchema, dependencies=[Depends(require_admin_key)])
async def get_report(report_id: str, report_service: ReportService = Depends(get_report_service)):
    return await report_service.get_report(report_id)


@router.put(
    "/{report_id}/status",
    response_model=ReportStatusUpdateResponse,
    dependencies=[Depends(require_admin_key)],
    summary="Change the review status of a report"
)
async def update_report_status(
    report_id: str,
    update: ReportStatusUpdateSchema,
    report_service: ReportService = Depends(get_report_service),
):
    report = await report_service.update_status(report_id, update)
    return ReportStatusUpdateResponse(message="Report status updated successfully", report=report)
