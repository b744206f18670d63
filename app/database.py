from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.ext.declarative import declarative_base
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

def _safe_url(url: str) -> str:
    """Hides the password part of a database URL for logging."""
    return make_url(url).render_as_string(hide_password=True)

logger.info(f"Connecting to database: {_safe_url(SQLALCHEMY_DATABASE_URL)}")

connect_args = {}
engine_kwargs = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False
else:
    engine_kwargs.update(pool_size=10, max_overflow=20, pool_pre_ping=True)

try:
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args=connect_args,
        **engine_kwargs,
    )
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base = declarative_base()

    logger.info("SQLAlchemy engine and session configured successfully.")

except Exception as e:
    logger.error(f"Failed to create SQLAlchemy engine or configure session: {e}", exc_info=True)
    raise

def get_db():
    """
    FastAPI dependency that provides a database session per request.
    Ensures the session is always closed, even if errors occur.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
