from sqlalchemy import Column, String, Text, JSON, DateTime, Boolean
from datetime import datetime, timezone
from sqlalchemy.sql import func
from app.database import Base

def _utcnow():
    return datetime.now(timezone.utc)

class Character(Base):
    __tablename__ = "characters"

    # Short numeric id, see app.utils.ids.generate_short_id
    id = Column(String(20), primary_key=True, index=True)
    name = Column(String(100), index=True, nullable=False)
    description = Column(Text, nullable=False)
    personality = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=False)
    background_image_url = Column(String(500), nullable=True)
    accent_color = Column(String(20), nullable=False, default="#ec4899")
    text_color = Column(String(20), nullable=False, default="#ffffff")
    age = Column(String(50), nullable=True)
    location = Column(String(200), nullable=True)
    response_time = Column(String(50), nullable=False, default="< 1 min")
    traits = Column(JSON, nullable=False, default=list)
    interests = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Character(id='{self.id}', name='{self.name}', is_active={self.is_active})>"
