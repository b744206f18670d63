import logging
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, File, Form, Request, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from app.core.exceptions import CharacterAppError, ValidationError
from app.schemas.character import (
    CharacterCreateSchema,
    CharacterResponseSchema,
    MessageResponseSchema,
)
from app.services.characters import CharacterService
from app.core.dependencies import get_character_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/characters", tags=["characters"])


def character_form(
    name: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    personality: Optional[str] = Form(default=None),
    accent_color: Optional[str] = Form(default=None, alias="accentColor"),
    text_color: Optional[str] = Form(default=None, alias="textColor"),
    age: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    response_time: Optional[str] = Form(default=None, alias="responseTime"),
    traits: Optional[str] = Form(default=None),
    interests: Optional[str] = Form(default=None),
) -> CharacterCreateSchema:
    """Collects the multipart text fields of a character form."""
    try:
        return CharacterCreateSchema(
            name=name,
            description=description,
            personality=personality,
            accent_color=accent_color,
            text_color=text_color,
            age=age,
            location=location,
            response_time=response_time,
            traits=traits,
            interests=interests,
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"Invalid value for '{field}': {first.get('msg')}", operation="validate") from e


@router.get(
    "",
    response_model=List[CharacterResponseSchema],
    summary="Get all active characters"
)
async def read_all_characters(
    char_service: CharacterService = Depends(get_character_service)
):
    """
    Retrieve all active characters, newest first.
    """
    try:
        characters = await char_service.get_all_characters()
        return [CharacterResponseSchema.from_record(c) for c in characters]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error retrieving all characters: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while retrieving characters."
        )


@router.get(
    "/featured",
    response_model=List[CharacterResponseSchema],
    summary="Get a few random characters"
)
async def read_featured_characters(
    char_service: CharacterService = Depends(get_character_service)
):
    try:
        characters = await char_service.get_featured_characters()
        return [CharacterResponseSchema.from_record(c) for c in characters]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error retrieving featured characters: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while retrieving characters."
        )


@router.get(
    "/{character_id}",
    response_model=CharacterResponseSchema,
    summary="Get a character by ID"
)
async def read_character_by_id(
    character_id: str,
    char_service: CharacterService = Depends(get_character_service)
):
    """
    Retrieve a single active character by its ID.
    """
    try:
        character = await char_service.get_character_by_id(character_id)
        return CharacterResponseSchema.from_record(character)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error retrieving character {character_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while retrieving the character."
        )


@router.post(
    "",
    response_model=CharacterResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create a character"
)
async def create_new_character(
    request: Request,
    character_data: CharacterCreateSchema = Depends(character_form),
    image: Optional[UploadFile] = File(default=None),
    background_image: Optional[UploadFile] = File(default=None, alias="backgroundImage"),
    char_service: CharacterService = Depends(get_character_service)
):
    """
    Create a new character from a multipart form.
    - **name**, **description**, **personality**: required.
    - **image**: required profile image, stored as a 400x400 WebP.
    - **backgroundImage**: optional, stored within 1200x800.
    """
    try:
        created = await char_service.create_character(
            character_data,
            image=image,
            background_image=background_image,
            base_url=str(request.base_url),
        )
        return CharacterResponseSchema.from_record(created)
    except (HTTPException, CharacterAppError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating character: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while creating the character."
        )


@router.put(
    "/{character_id}",
    response_model=CharacterResponseSchema,
    summary="Update a character"
)
async def update_existing_character(
    character_id: str,
    request: Request,
    character_update_data: CharacterCreateSchema = Depends(character_form),
    image: Optional[UploadFile] = File(default=None),
    background_image: Optional[UploadFile] = File(default=None, alias="backgroundImage"),
    char_service: CharacterService = Depends(get_character_service)
):
    """
    Update an existing character.
    Only fields present in the form are changed; a new `image` replaces the profile image.
    """
    try:
        updated = await char_service.update_character(
            character_id,
            character_update_data,
            image=image,
            background_image=background_image,
            base_url=str(request.base_url),
        )
        return CharacterResponseSchema.from_record(updated)
    except (HTTPException, CharacterAppError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error updating character {character_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while updating the character."
        )


@router.delete(
    "/{character_id}",
    response_model=MessageResponseSchema,
    summary="Soft delete a character"
)
async def remove_character(
    character_id: str,
    char_service: CharacterService = Depends(get_character_service)
):
    """
    Hide a character from public listings. The record is kept.
    """
    try:
        return await char_service.delete_character(character_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error deleting character {character_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while deleting the character."
        )


@router.delete(
    "/{character_id}/permanent",
    response_model=MessageResponseSchema,
    summary="Permanently delete a character"
)
async def remove_character_permanently(
    character_id: str,
    char_service: CharacterService = Depends(get_character_service)
):
    try:
        return await char_service.permanently_delete_character(character_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error permanently deleting character {character_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal server error occurred while deleting the character."
        )
