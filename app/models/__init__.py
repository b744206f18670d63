# app/models/__init__.py

from app.database import Base

# Every model must be imported here so Base.metadata.create_all sees its table
from .characters import Character
from .reports import Report

__all__ = ["Base", "Character", "Report"]
