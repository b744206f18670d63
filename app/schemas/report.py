from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ReportReason(str, Enum):
    OFFENSIVE_LANGUAGE = "offensive_language"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    HARMFUL_INFORMATION = "harmful_information"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# Statuses that close a report and record who reviewed it
CLOSING_STATUSES = frozenset({ReportStatus.RESOLVED, ReportStatus.DISMISSED})


class _CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ReportMetadataSchema(_CamelModel):
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None
    message_timestamp: Optional[datetime] = None


class ReportCreateSchema(_CamelModel):
    """
    Submission payload. Fields are optional here so ReportService can answer a
    missing one with the same 400 message whichever it is.
    """
    character_id: Optional[str] = Field(default=None, examples=["4821937562"])
    message_content: Optional[str] = Field(default=None, max_length=10000)
    reason: Optional[str] = Field(default=None, examples=["offensive_language"])
    details: Optional[str] = Field(default=None, max_length=5000)
    metadata: Optional[ReportMetadataSchema] = None


class ReportSubmitResponse(_CamelModel):
    message: str
    report_id: str


class ReportStatusUpdateSchema(_CamelModel):
    status: Optional[str] = None
    resolution: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = None


class AdminReviewSchema(_CamelModel):
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    resolution: Optional[str] = None
    notes: Optional[str] = None


class ReportSchema(_CamelModel):
    id: str
    character_id: str
    reporter_id: str
    message_content: str
    reason: ReportReason
    details: Optional[str] = None
    metadata: Dict[str, Any] = {}
    status: ReportStatus
    admin_review: Optional[AdminReviewSchema] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "ReportSchema":
        review = None
        if record.reviewed_at is not None:
            review = AdminReviewSchema(
                reviewed_by=record.reviewed_by,
                reviewed_at=record.reviewed_at,
                resolution=record.resolution,
                notes=record.review_notes,
            )
        return cls(
            id=record.id,
            character_id=record.character_id,
            reporter_id=record.reporter_id,
            message_content=record.message_content,
            reason=record.reason,
            details=record.details,
            metadata=record.report_metadata or {},
            status=record.status,
            admin_review=review,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class PaginationSchema(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ReportListResponse(BaseModel):
    reports: List[ReportSchema]
    pagination: PaginationSchema


class ReportStatusUpdateResponse(BaseModel):
    message: str
    report: ReportSchema


class DailyReportCount(BaseModel):
    date: str
    count: int


class ReportStatsResponse(_CamelModel):
    total_reports: int
    status_stats: Dict[str, int]
    reason_stats: Dict[str, int]
    daily_reports: List[DailyReportCount]
