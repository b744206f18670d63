import logging
from sqlalchemy.orm import Session
from fastapi import HTTPException, status, Depends

from app.core.config import settings
from app.database import get_db
from app.services.admin import AdminService
from app.services.characters import CharacterService
from app.services.listing import ListingAdapter
from app.services.llm_service import LlmService
from app.services.reports import ReportService
from app.services.storage import LocalDiskBackend, RemoteCDNBackend
from app.services.upload_orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)

# --- Caching Instances ---
# Use global variables for simple instance caching during app lifetime
_remote_backend_instance = None
_llm_service_instance = None
# --- End Caching Instances ---


def get_remote_backend() -> RemoteCDNBackend:
    """
    Dependency function to get the RemoteCDNBackend instance.
    Initializes it on first call so the HTTP session is shared across requests.
    """
    global _remote_backend_instance
    if _remote_backend_instance is None:
        if not settings.BUNNY_API_KEY:
            logger.warning("BUNNY_API_KEY is not set, remote uploads will fail over to local storage.")
        _remote_backend_instance = RemoteCDNBackend(
            access_key=settings.BUNNY_API_KEY,
            storage_zone=settings.BUNNY_STORAGE_ZONE,
            base_url=settings.BUNNY_STORAGE_BASE_URL,
            cdn_base_url=settings.BUNNY_CDN_BASE_URL,
            timeout=settings.REMOTE_STORAGE_TIMEOUT_SECONDS,
        )
    return _remote_backend_instance


def get_local_backend() -> LocalDiskBackend:
    return LocalDiskBackend(
        base_dir=settings.LOCAL_STORAGE_DIR,
        static_route_prefix=settings.LOCAL_STATIC_ROUTE,
    )


def get_upload_orchestrator(
    remote: RemoteCDNBackend = Depends(get_remote_backend),
    local: LocalDiskBackend = Depends(get_local_backend),
) -> UploadOrchestrator:
    """Remote storage first, local disk as the fallback."""
    return UploadOrchestrator(backends=[remote, local], settings=settings)


def get_listing_adapter(remote: RemoteCDNBackend = Depends(get_remote_backend)) -> ListingAdapter:
    return ListingAdapter(remote)


def get_llm_service() -> LlmService:
    """
    Provides a singleton instance of LlmService for FastAPI dependency injection.

    A missing GOOGLE_API_KEY is not fatal: the service is still created and
    chat replies fall back to canned messages.

    Raises:
        HTTPException: If the provider client cannot be initialized.
    """
    global _llm_service_instance
    if _llm_service_instance is None:
        try:
            _llm_service_instance = LlmService(
                api_key=settings.GOOGLE_API_KEY,
                default_model=settings.MODEL_NAME,
                max_output_tokens=settings.LLM_MAX_OUTPUT_TOKENS,
                temperature=settings.LLM_TEMPERATURE,
                top_p=settings.LLM_TOP_P,
                history_turns=settings.LLM_HISTORY_TURNS,
            )
        except ConnectionError as e:
            logger.error(f"Could not initialize LlmService: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Could not initialize LLM service: {e}"
            )

    return _llm_service_instance


def get_character_service(
    db: Session = Depends(get_db),
    orchestrator: UploadOrchestrator = Depends(get_upload_orchestrator),
) -> CharacterService:
    """
    Provides an instance of CharacterService for FastAPI dependency injection.

    A new instance is created for each request so a fresh database session is used.

    Args:
        db (Session): SQLAlchemy database session from the get_db dependency.
        orchestrator (UploadOrchestrator): Image upload pipeline.

    Returns:
        CharacterService: A new instance of the character service.
    """
    return CharacterService(db=db, orchestrator=orchestrator)


def get_admin_service(
    db: Session = Depends(get_db),
    character_svc: CharacterService = Depends(get_character_service),
    llm_svc: LlmService = Depends(get_llm_service),
) -> AdminService:
    return AdminService(db=db, character_svc=character_svc, llm_svc=llm_svc)


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db=db)
