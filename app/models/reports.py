import uuid
from sqlalchemy import Column, String, Text, JSON, DateTime
from datetime import datetime, timezone
from sqlalchemy.sql import func
from app.database import Base

def _utcnow():
    return datetime.now(timezone.utc)

def _report_id():
    return uuid.uuid4().hex

class Report(Base):
    """A user report about a generated chat message."""
    __tablename__ = "reports"

    id = Column(String(32), primary_key=True, default=_report_id)
    character_id = Column(String(20), index=True, nullable=False)
    reporter_id = Column(String(200), nullable=False)
    message_content = Column(Text, nullable=False)
    reason = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    # `metadata` is reserved on declarative classes
    report_metadata = Column("metadata", JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="pending", index=True)

    # Filled once a report is resolved or dismissed
    reviewed_by = Column(String(100), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    resolution = Column(String(200), nullable=True)
    review_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Report(id='{self.id}', character_id='{self.character_id}', status='{self.status}')>"
