import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from app.core.config import settings

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn", "uvicorn.access", "PIL", "urllib3", "httpx", "google_genai")


class ColorFormatter(logging.Formatter):
    """Console formatter: `file:func() | LEVEL | message`, coloured per level."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',     # Cyan
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[31;1m' # Bold Red
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__('%(levelname)-8s | %(message)s')
        self.use_color = use_color

    def format(self, record):
        location = os.path.basename(record.pathname)
        if record.funcName and record.funcName != "<module>":
            location += f":{record.funcName}()"
        line = f"{location} | {super().format(record)}"
        if not self.use_color:
            return line
        return f"{self.LEVEL_COLORS.get(record.levelno, '')}{line}{self.RESET}"


def _resolve_level(level) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level=None, log_file: Optional[str] = None) -> None:
    """
    Configures the root logger once: a size-rotated log file plus a console
    handler. Level and file default to LOG_LEVEL / LOG_FILE from settings.
    Calling it again only updates the level.
    """
    root = logging.getLogger()
    root.setLevel(_resolve_level(level or settings.LOG_LEVEL))

    if getattr(root, "_character_api_configured", False):
        return

    log_file = log_file or settings.LOG_FILE
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter(use_color=sys.stderr.isatty()))
    root.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root._character_api_configured = True
