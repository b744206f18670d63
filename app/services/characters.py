import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import func as sql_func
from fastapi import HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import CharacterAppError, DecodeError, StorageError, ValidationError
from app.schemas.character import (
    CharacterCreateSchema,
    CharacterMutationSchema,
    CharacterRecordSchema,
    DEFAULT_ACCENT_COLOR,
    DEFAULT_RESPONSE_TIME,
    DEFAULT_TEXT_COLOR,
)
from app.schemas.upload import ImageRole
from app.models.characters import Character
from app.services.upload_orchestrator import UploadOrchestrator
from app.utils.ids import generate_short_id

logger = logging.getLogger(__name__)

__all__ = ["CharacterService"]

MAX_ID_ATTEMPTS = 5
FEATURED_COUNT = 3


def _upload_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    current = file.file.tell()
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(current)
    return size


class CharacterService:
    def __init__(self, db: Session, orchestrator: UploadOrchestrator):
        """
        Initializes the CharacterService with a database session and the image
        upload pipeline used for profile and background images.

        Args:
            db (Session): The SQLAlchemy database session.
            orchestrator (UploadOrchestrator): Processes and stores uploaded images.
        """
        self.db = db
        self.orchestrator = orchestrator
        logger.debug(f"CharacterService initialized with db session: {db}")

    # --- Validation helpers ---

    def _validate_image(self, file: Optional[UploadFile], label: str, required: bool) -> None:
        if file is None or not file.filename:
            if required:
                raise ValidationError(f"{label} is required", operation="validate")
            return
        if not (file.content_type or "").startswith("image/"):
            raise ValidationError(f"{label} must be an image file", operation="validate")
        if _upload_size(file) > settings.MAX_UPLOAD_BYTES:
            raise ValidationError(
                f"{label} exceeds the {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit",
                operation="validate",
            )

    @staticmethod
    def _has_file(file: Optional[UploadFile]) -> bool:
        return file is not None and bool(file.filename)

    @staticmethod
    def _absolute_url(url: str, base_url: Optional[str]) -> str:
        """Local fallback URLs are root-relative; records always store absolute URLs."""
        if url.startswith("/") and base_url:
            return base_url.rstrip("/") + url
        return url

    def _new_character_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = generate_short_id()
            if not self.db.query(Character.id).filter(Character.id == candidate).first():
                return candidate
            logger.warning(f"Generated character id {candidate} already exists, retrying")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not allocate a unique character id",
        )

    def _get_record(self, character_id: str, include_inactive: bool) -> Character:
        query = self.db.query(Character).filter(Character.id == character_id)
        if not include_inactive:
            query = query.filter(Character.is_active.is_(True))
        db_character = query.first()
        if not db_character:
            logger.warning(f"Character with ID '{character_id}' not found.")
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Character not found",
            )
        return db_character

    async def _store_background(self, file: UploadFile, character_id: str, base_url: Optional[str]) -> Optional[str]:
        """Background images are optional: any pipeline failure leaves them unset."""
        try:
            url = await self.orchestrator.store_upload(file, character_id, ImageRole.BACKGROUND)
            return self._absolute_url(url, base_url)
        except (StorageError, DecodeError) as e:
            logger.error(f"Failed to store background image for character {character_id}, continuing without it: {e}")
            return None

    # --- Operations ---

    async def create_character(
        self,
        character_data: CharacterCreateSchema,
        image: Optional[UploadFile],
        background_image: Optional[UploadFile] = None,
        base_url: Optional[str] = None,
    ) -> CharacterRecordSchema:
        """
        Creates a new character, uploading its profile and optional background image.

        Args:
            character_data: Text fields of the character
            image: Profile image upload (required)
            background_image: Background image upload (optional)
            base_url: Request base URL used to absolutize local fallback URLs

        Returns:
            CharacterRecordSchema: The created character

        Raises:
            ValidationError: Required fields or the profile image are missing/invalid.
                Raised before any file is staged or stored.
            DecodeError, AggregateUploadError: The profile image could not be stored.
                Nothing is persisted.
            HTTPException: On database errors
        """
        logger.info(f"Attempting to create character: {character_data.name}")

        if not (character_data.name and character_data.description and character_data.personality):
            raise ValidationError("Please provide name, description, and personality", operation="validate")
        self._validate_image(image, "Character image", required=True)
        self._validate_image(background_image, "Background image", required=False)

        try:
            character_id = self._new_character_id()

            image_url = await self.orchestrator.store_upload(image, character_id, ImageRole.PROFILE)
            image_url = self._absolute_url(image_url, base_url)
            logger.info(f"Profile image stored for character {character_id}: {image_url}")

            background_image_url = None
            if self._has_file(background_image):
                background_image_url = await self._store_background(background_image, character_id, base_url)

            db_character = Character(
                id=character_id,
                name=character_data.name,
                description=character_data.description,
                personality=character_data.personality,
                image_url=image_url,
                background_image_url=background_image_url,
                accent_color=character_data.accent_color or DEFAULT_ACCENT_COLOR,
                text_color=character_data.text_color or DEFAULT_TEXT_COLOR,
                age=character_data.age,
                location=character_data.location,
                response_time=character_data.response_time or DEFAULT_RESPONSE_TIME,
                traits=character_data.traits or [],
                interests=character_data.interests or [],
                is_active=True,
            )

            self.db.add(db_character)
            self.db.commit()
            self.db.refresh(db_character)
            logger.info(f"Successfully created character '{db_character.name}' with ID: {db_character.id}")
            return CharacterRecordSchema.model_validate(db_character, from_attributes=True)

        except (HTTPException, CharacterAppError):
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error creating character: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    async def get_character_by_id(
        self, character_id: str, include_inactive: bool = False
    ) -> CharacterRecordSchema:
        """
        Retrieves a character by ID. Soft-deleted characters are only visible
        with `include_inactive`.
        """
        logger.debug(f"Attempting to retrieve character by ID: {character_id}")

        try:
            db_character = self._get_record(character_id, include_inactive)
            return CharacterRecordSchema.model_validate(db_character, from_attributes=True)
        except HTTPException:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database error retrieving character: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    async def get_all_characters(self, include_inactive: bool = False) -> List[CharacterRecordSchema]:
        """
        Retrieves characters, newest first.

        Args:
            include_inactive: Also return soft-deleted characters (admin view)
        """
        logger.info(f"Retrieving all characters (include_inactive={include_inactive}).")

        try:
            query = self.db.query(Character)
            if not include_inactive:
                query = query.filter(Character.is_active.is_(True))
            db_characters = query.order_by(Character.created_at.desc()).all()
            logger.info(f"Retrieved {len(db_characters)} characters.")
            return [CharacterRecordSchema.model_validate(char, from_attributes=True) for char in db_characters]

        except SQLAlchemyError as e:
            logger.error(f"Database error retrieving characters: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    async def get_featured_characters(self, count: int = FEATURED_COUNT) -> List[CharacterRecordSchema]:
        """Random sample of active characters."""
        try:
            db_characters = (
                self.db.query(Character)
                .filter(Character.is_active.is_(True))
                .order_by(sql_func.random())
                .limit(count)
                .all()
            )
            return [CharacterRecordSchema.model_validate(char, from_attributes=True) for char in db_characters]
        except SQLAlchemyError as e:
            logger.error(f"Database error retrieving featured characters: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    async def update_character(
        self,
        character_id: str,
        character_update_data: CharacterMutationSchema,
        image: Optional[UploadFile] = None,
        background_image: Optional[UploadFile] = None,
        base_url: Optional[str] = None,
    ) -> CharacterRecordSchema:
        """
        Updates a character by ID. Only provided fields change.

        A new profile image replaces `image_url` and must be stored successfully,
        otherwise nothing is saved. A failing background image keeps the previous
        background. Replaced objects are left in storage.

        Raises:
            HTTPException: If character not found or database error occurs
            ValidationError, DecodeError, AggregateUploadError: profile image problems
        """
        logger.info(f"Attempting to update character with ID: {character_id}")

        self._validate_image(image, "Character image", required=False)
        self._validate_image(background_image, "Background image", required=False)

        try:
            db_character = self._get_record(character_id, include_inactive=True)

            update_data_dict = character_update_data.model_dump(exclude_none=True)
            logger.debug(f"Update data for character {character_id}: {update_data_dict}")

            if self._has_file(image):
                new_image_url = await self.orchestrator.store_upload(image, character_id, ImageRole.PROFILE)
                update_data_dict["image_url"] = self._absolute_url(new_image_url, base_url)
                logger.info(f"Updated profile image for character {character_id}: {update_data_dict['image_url']}")

            if self._has_file(background_image):
                new_background_url = await self._store_background(background_image, character_id, base_url)
                if new_background_url:
                    update_data_dict["background_image_url"] = new_background_url

            for key, value in update_data_dict.items():
                setattr(db_character, key, value)
            db_character.updated_at = datetime.now(timezone.utc)

            self.db.commit()
            self.db.refresh(db_character)
            logger.info(f"Successfully updated character '{db_character.name}' (ID: {character_id}).")
            return CharacterRecordSchema.model_validate(db_character, from_attributes=True)

        except (HTTPException, CharacterAppError):
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error updating character: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    async def delete_character(self, character_id: str) -> dict:
        """Soft delete: the record stays but is hidden from public listings."""
        logger.info(f"Attempting to soft delete character with ID: {character_id}")

        try:
            db_character = self._get_record(character_id, include_inactive=True)
            db_character.is_active = False
            db_character.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            logger.info(f"Soft deleted character with ID: {character_id}.")
            return {"message": "Character deleted successfully"}

        except HTTPException:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error deleting character: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    async def permanently_delete_character(self, character_id: str) -> dict:
        """Removes the record. Stored images are not cleaned up."""
        logger.info(f"Attempting to permanently delete character with ID: {character_id}")

        try:
            db_character = self._get_record(character_id, include_inactive=True)
            self.db.delete(db_character)
            self.db.commit()
            logger.info(f"Permanently deleted character with ID: {character_id}.")
            return {"message": "Character permanently deleted"}

        except HTTPException:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error permanently deleting character: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Database error: {str(e)}"
            )

    def count_characters(self) -> dict:
        """Totals for the admin dashboard."""
        total = self.db.query(sql_func.count(Character.id)).scalar() or 0
        active = (
            self.db.query(sql_func.count(Character.id))
            .filter(Character.is_active.is_(True))
            .scalar()
            or 0
        )
        return {"total": total, "active": active, "inactive": total - active}
