import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, File, Request, UploadFile, status

from app.core.config import settings
from app.core.dependencies import get_admin_service, get_character_service, get_llm_service
from app.core.exceptions import CharacterAppError, LLMServiceError
from app.core.security import require_admin_key, verify_admin_credentials
from app.routers.characters import character_form
from app.schemas.admin import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminStatsResponse,
    AdminStatusResponse,
    ModelListResponse,
)
from app.schemas.character import CharacterCreateSchema, CharacterRecordSchema, MessageResponseSchema
from app.services.admin import AdminService
from app.services.characters import CharacterService
from app.services.llm_service import LlmService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=AdminLoginResponse, summary="Exchange admin credentials for the API key")
async def login(credentials: AdminLoginRequest):
    if not verify_admin_credentials(credentials.username, credentials.password):
        logger.warning(f"Failed admin login attempt for username '{credentials.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    logger.info(f"Admin '{credentials.username}' logged in")
    return AdminLoginResponse(api_key=settings.ADMIN_API_KEY)


@router.get(
    "/stats",
    response_model=AdminStatsResponse,
    dependencies=[Depends(require_admin_key)],
    summary="Character counts and runtime info"
)
async def get_stats(admin_service: AdminService = Depends(get_admin_service)):
    try:
        return await admin_service.get_stats()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting stats: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.get("/status", response_model=AdminStatusResponse, summary="System, database and LLM status")
async def get_status(admin_service: AdminService = Depends(get_admin_service)):
    return await admin_service.get_status()


@router.get("/models", response_model=ModelListResponse, summary="Available LLM models")
async def get_models(llm_service: LlmService = Depends(get_llm_service)):
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        models = await llm_service.list_models()
    except LLMServiceError as e:
        return ModelListResponse(models=[], count=0, timestamp=timestamp, error=str(e))
    return ModelListResponse(models=models, count=len(models), timestamp=timestamp)


# --- Character management (includes inactive characters) ---

@router.get(
    "/characters",
    response_model=List[CharacterRecordSchema],
    dependencies=[Depends(require_admin_key)],
)
async def admin_list_characters(char_service: CharacterService = Depends(get_character_service)):
    return await char_service.get_all_characters(include_inactive=True)


@router.get(
    "/characters/{character_id}",
    response_model=CharacterRecordSchema,
    dependencies=[Depends(require_admin_key)],
)
async def admin_get_character(
    character_id: str,
    char_service: CharacterService = Depends(get_character_service),
):
    return await char_service.get_character_by_id(character_id, include_inactive=True)


@router.post(
    "/characters",
    response_model=CharacterRecordSchema,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_key)],
)
async def admin_create_character(
    request: Request,
    character_data: CharacterCreateSchema = Depends(character_form),
    image: Optional[UploadFile] = File(default=None),
    background_image: Optional[UploadFile] = File(default=None, alias="backgroundImage"),
    char_service: CharacterService = Depends(get_character_service),
):
    try:
        return await char_service.create_character(
            character_data,
            image=image,
            background_image=background_image,
            base_url=str(request.base_url),
        )
    except (HTTPException, CharacterAppError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating character from admin: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.put(
    "/characters/{character_id}",
    response_model=CharacterRecordSchema,
    dependencies=[Depends(require_admin_key)],
)
async def admin_update_character(
    character_id: str,
    request: Request,
    character_data: CharacterCreateSchema = Depends(character_form),
    image: Optional[UploadFile] = File(default=None),
    background_image: Optional[UploadFile] = File(default=None, alias="backgroundImage"),
    char_service: CharacterService = Depends(get_character_service),
):
    try:
        return await char_service.update_character(
            character_id,
            character_data,
            image=image,
            background_image=background_image,
            base_url=str(request.base_url),
        )
    except (HTTPException, CharacterAppError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error updating character {character_id} from admin: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.delete(
    "/characters/{character_id}",
    response_model=MessageResponseSchema,
    dependencies=[Depends(require_admin_key)],
)
async def admin_delete_character(
    character_id: str,
    char_service: CharacterService = Depends(get_character_service),
):
    """Soft delete, same as the public endpoint."""
    return await char_service.delete_character(character_id)
