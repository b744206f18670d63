import logging

from app.core.logging_config import ColorFormatter, _resolve_level, setup_logging


def _record(level=logging.WARNING, func="upload"):
    return logging.LogRecord(
        name="app.services.storage",
        level=level,
        pathname="/srv/app/services/storage.py",
        lineno=10,
        msg="remote failed for %s",
        args=("characters/1/profile-1.webp",),
        exc_info=None,
        func=func,
    )


def test_plain_console_format():
    line = ColorFormatter(use_color=False).format(_record())

    assert line == "storage.py:upload() | WARNING  | remote failed for characters/1/profile-1.webp"


def test_coloured_console_format_wraps_line():
    line = ColorFormatter(use_color=True).format(_record(level=logging.ERROR, func="<module>"))

    assert line.startswith("\033[31mstorage.py | ERROR")
    assert line.endswith("\033[0m")


def test_level_names_are_resolved():
    assert _resolve_level("debug") == logging.DEBUG
    assert _resolve_level(logging.ERROR) == logging.ERROR
    assert _resolve_level("not-a-level") == logging.INFO


def test_setup_is_idempotent():
    root = logging.getLogger()
    setup_logging()
    handler_count = len(root.handlers)

    setup_logging(level="WARNING")

    assert len(root.handlers) == handler_count
    assert root.level == logging.WARNING
    setup_logging(level="INFO")
