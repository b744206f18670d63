import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.core.logging_config import setup_logging

setup_logging()

from app.core.config import settings
from app.core.exceptions import (
    CharacterAppError,
    DecodeError,
    LLMServiceError,
    RemoteStorageError,
    StorageError,
    ValidationError,
)
from app.database import Base, engine
from app import models  # noqa: F401  registers tables on Base.metadata
from app.routers import admin, characters as characters_router, chat, media, reports

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    os.makedirs(settings.LOCAL_STORAGE_DIR, exist_ok=True)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Character API started (environment={settings.ENVIRONMENT})")
    yield
    logger.info("Character API shutting down")


app = FastAPI(title="Character Chat API", lifespan=lifespan)


# --- Error mapping ---

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message)


@app.exception_handler(DecodeError)
async def decode_error_handler(request: Request, exc: DecodeError):
    logger.warning(f"Unreadable image on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_400_BAD_REQUEST, "Uploaded file is not a valid image")


@app.exception_handler(RemoteStorageError)
async def remote_storage_error_handler(request: Request, exc: RemoteStorageError):
    logger.error(f"Remote storage failure on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_502_BAD_GATEWAY, "Remote storage is unavailable")


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to upload image")


@app.exception_handler(LLMServiceError)
async def llm_error_handler(request: Request, exc: LLMServiceError):
    logger.error(f"LLM failure on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc.message)


@app.exception_handler(CharacterAppError)
async def app_error_handler(request: Request, exc: CharacterAppError):
    logger.error(f"Unhandled application error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


app.include_router(characters_router.router, prefix="/api")
app.include_router(media.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(reports.router, prefix="/api")

# Local fallback images are served by the app itself
app.mount(
    settings.LOCAL_STATIC_ROUTE,
    StaticFiles(directory=settings.LOCAL_STORAGE_DIR, check_dir=False),
    name="images",
)


@app.get("/health")
async def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
