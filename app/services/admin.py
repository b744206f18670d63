import os
import sys
import time
import logging
import platform
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.services.characters import CharacterService
from app.services.llm_service import LlmService

logger = logging.getLogger(__name__)

__all__ = ["AdminService"]

_PROCESS_STARTED_AT = time.monotonic()


class AdminService:
    """Read-only runtime and content statistics for the admin dashboard."""

    def __init__(self, db: Session, character_svc: CharacterService, llm_svc: LlmService):
        self.db = db
        self.character_svc = character_svc
        self.llm_svc = llm_svc

    def database_connected(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connectivity check failed: {e}")
            return False

    async def get_stats(self) -> dict:
        counts = self.character_svc.count_characters()
        return {
            "total_characters": counts["total"],
            "active_characters": counts["active"],
            "inactive_characters": counts["inactive"],
            "server_uptime": round(time.monotonic() - _PROCESS_STARTED_AT, 3),
            "python_version": platform.python_version(),
            "database_connection": "connected" if self.database_connected() else "disconnected",
            "environment": settings.ENVIRONMENT,
        }

    async def get_status(self) -> dict:
        load_avg = list(os.getloadavg()) if hasattr(os, "getloadavg") else []
        system_info = {
            "hostname": platform.node(),
            "platform": platform.system(),
            "arch": platform.machine(),
            "cpus": os.cpu_count(),
            "load_avg": load_avg,
        }
        database_info = {
            "connected": self.database_connected(),
            "dialect": self.db.get_bind().dialect.name,
        }
        runtime_info = {
            "python_version": sys.version.split()[0],
            "pid": os.getpid(),
            "uptime": round(time.monotonic() - _PROCESS_STARTED_AT, 3),
            "environment": settings.ENVIRONMENT,
        }
        return {
            "system": system_info,
            "database": database_info,
            "runtime": runtime_info,
            "llm": await self.llm_svc.check_health(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
