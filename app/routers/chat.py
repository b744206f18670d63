from fastapi import APIRouter, HTTPException, Depends, status
from app.services.llm_service import LlmService
from app.services.characters import CharacterService
import logging
from app.schemas.chat import (
    ChatCharacterInfo,
    ChatRequest,
    ChatResponse,
    LlmHealthResponse,
    SystemMessageResponse,
)
from app.core.dependencies import get_character_service, get_llm_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["chat"])


@router.post("/character/response", response_model=ChatResponse, summary="Reply as a character")
async def character_response_endpoint(
    request: ChatRequest,
    llm_service: LlmService = Depends(get_llm_service),
    char_service: CharacterService = Depends(get_character_service),
):
    """
    Generates the character's reply to `message`, given the previous turns.
    Provider errors are answered with a canned reply and `fallback: true`.
    """
    if not request.character_id or not request.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Character ID and message are required",
        )

    character = await char_service.get_character_by_id(request.character_id)
    logger.info(f"Received chat request for character {character.id} ({len(request.conversation)} previous turns)")

    conversation = [turn.model_dump() for turn in request.conversation]
    result = await llm_service.generate_character_response(character, request.message, conversation)

    return ChatResponse(
        response=result["response"],
        character=ChatCharacterInfo(id=character.id, name=character.name),
        fallback=result["fallback"],
    )


@router.get(
    "/character/{character_id}/system-message",
    response_model=SystemMessageResponse,
    response_model_by_alias=True,
    summary="Show the system message used for a character"
)
async def system_message_endpoint(
    character_id: str,
    char_service: CharacterService = Depends(get_character_service),
):
    character = await char_service.get_character_by_id(character_id)
    return SystemMessageResponse(system_message=LlmService.build_system_message(character))


@router.get("/health", response_model=LlmHealthResponse, summary="LLM provider health")
async def llm_health_endpoint(llm_service: LlmService = Depends(get_llm_service)):
    return await llm_service.check_health()
