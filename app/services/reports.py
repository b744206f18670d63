import math
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func as sql_func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.characters import Character
from app.models.reports import Report
from app.schemas.report import (
    CLOSING_STATUSES,
    DailyReportCount,
    PaginationSchema,
    ReportCreateSchema,
    ReportListResponse,
    ReportReason,
    ReportSchema,
    ReportStatsResponse,
    ReportStatus,
    ReportStatusUpdateSchema,
)

logger = logging.getLogger(__name__)

__all__ = ["ReportService", "ReporterInfo"]

STATS_WINDOW_DAYS = 30
UNKNOWN = "unknown"


class ReporterInfo:
    """Who sent a report, taken from the request headers."""

    def __init__(self, reporter_id: str, app_version: Optional[str] = None, device_info: Optional[str] = None):
        self.reporter_id = reporter_id
        self.app_version = app_version or UNKNOWN
        self.device_info = device_info or UNKNOWN


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def _get_record(self, report_id: str) -> Report:
        report = self.db.query(Report).filter(Report.id == report_id).first()
        if not report:
            logger.warning(f"Report with ID '{report_id}' not found.")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
        return report

    def _database_error(self, action: str, e: SQLAlchemyError) -> HTTPException:
        self.db.rollback()
        logger.error(f"Database error {action}: {str(e)}", exc_info=True)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    async def submit_report(self, data: ReportCreateSchema, reporter: ReporterInfo) -> Report:
        """
        Stores a report about a character's message.

        Raises:
            ValidationError: characterId, messageContent or reason is missing,
                or reason is not one of the known values.
            HTTPException: 404 for an unknown character, 500 on database errors.
        """
        if not (data.character_id and data.message_content and data.reason):
            raise ValidationError(
                "Missing required fields: characterId, messageContent, and reason are required",
                operation="validate",
            )
        try:
            reason = ReportReason(data.reason)
        except ValueError as e:
            raise ValidationError(f"Invalid report reason '{data.reason}'", operation="validate") from e

        try:
            # Soft-deleted characters can still be reported
            exists = self.db.query(Character.id).filter(Character.id == data.character_id).first()
            if not exists:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Character not found")

            metadata = data.metadata.model_dump(mode="json", by_alias=True, exclude_none=True) if data.metadata else {}
            metadata.update(appVersion=reporter.app_version, deviceInfo=reporter.device_info)

            report = Report(
                character_id=data.character_id,
                reporter_id=reporter.reporter_id,
                message_content=data.message_content,
                reason=reason.value,
                details=data.details,
                report_metadata=metadata,
                status=ReportStatus.PENDING.value,
            )
            self.db.add(report)
            self.db.commit()
            self.db.refresh(report)
            # Message content stays out of the logs
            logger.info(f"New content report submitted for character {data.character_id} by {reporter.reporter_id}")
            return report

        except HTTPException:
            raise
        except SQLAlchemyError as e:
            raise self._database_error("submitting report", e)

    async def list_reports(
        self,
        status_filter: Optional[ReportStatus] = None,
        character_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ReportListResponse:
        """Newest first, optionally filtered by status and character."""
        try:
            query = self.db.query(Report)
            if status_filter:
                query = query.filter(Report.status == status_filter.value)
            if character_id:
                query = query.filter(Report.character_id == character_id)

            total = query.count()
            records = (
                query.order_by(Report.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise self._database_error("listing reports", e)

        return ReportListResponse(
            reports=[ReportSchema.from_record(r) for r in records],
            pagination=PaginationSchema(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
        )

    async def get_report(self, report_id: str) -> ReportSchema:
        try:
            return ReportSchema.from_record(self._get_record(report_id))
        except SQLAlchemyError as e:
            raise self._database_error("retrieving report", e)

    async def update_status(
        self,
        report_id: str,
        update: ReportStatusUpdateSchema,
        reviewed_by: str = "admin",
    ) -> ReportSchema:
        """
        Moves a report to a new status. Resolving or dismissing it also records
        the review (who, when, resolution defaulting to the status, notes).
        """
        try:
            new_status = ReportStatus(update.status or "")
        except ValueError as e:
            raise ValidationError("Invalid status value", operation="validate") from e

        try:
            report = self._get_record(report_id)
            report.status = new_status.value
            if new_status in CLOSING_STATUSES:
                report.reviewed_by = reviewed_by
                report.reviewed_at = datetime.now(timezone.utc)
                report.resolution = update.resolution or new_status.value
                report.review_notes = update.notes
            report.updated_at = datetime.now(timezone.utc)

            self.db.commit()
            self.db.refresh(report)
            logger.info(f"Report {report_id} moved to '{new_status.value}'")
            return ReportSchema.from_record(report)

        except HTTPException:
            raise
        except SQLAlchemyError as e:
            raise self._database_error("updating report status", e)

    async def get_stats(self, now: Optional[datetime] = None) -> ReportStatsResponse:
        """Totals by status and reason, plus per-day counts for the last 30 days."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=STATS_WINDOW_DAYS)
        try:
            total = self.db.query(sql_func.count(Report.id)).scalar() or 0
            by_status = self.db.query(Report.status, sql_func.count(Report.id)).group_by(Report.status).all()
            by_reason = self.db.query(Report.reason, sql_func.count(Report.id)).group_by(Report.reason).all()
            recent = self.db.query(Report.created_at).filter(Report.created_at >= since).all()
        except SQLAlchemyError as e:
            raise self._database_error("computing report stats", e)

        daily = Counter(created_at.strftime("%Y-%m-%d") for (created_at,) in recent)
        return ReportStatsResponse(
            total_reports=total,
            status_stats={key: count for key, count in by_status},
            reason_stats={key: count for key, count in by_reason},
            daily_reports=[DailyReportCount(date=day, count=daily[day]) for day in sorted(daily)],
        )
