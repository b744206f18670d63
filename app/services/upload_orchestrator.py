import os
import shutil
import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from fastapi import UploadFile

from app.core.exceptions import AggregateUploadError, LocalUploadError, StorageError
from app.schemas.upload import ImageOptions, ImageRole, OUTPUT_CONTENT_TYPE, StagedUpload
from app.services.image_transform import ImageTransform, default_options_for
from app.services.object_path import CHARACTER_ENTITY_KIND, build_key, epoch_millis
from app.services.storage import StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["UploadOrchestrator", "TemporaryFileJanitor"]


class TemporaryFileJanitor:
    """Removes staged upload files once the orchestrator is done with them."""

    @contextmanager
    def guard(self, path: str) -> Iterator[str]:
        """Yields `path` and removes the file on every exit path, exactly once."""
        try:
            yield path
        finally:
            self.remove(path)

    def remove(self, path: str) -> None:
        if not path:
            return
        try:
            os.remove(path)
            logger.info(f"Removed temporary file: '{path}'")
        except FileNotFoundError:
            logger.debug(f"Temporary file '{path}' was already gone")
        except OSError as e:
            # Never mask the upload outcome because cleanup failed
            logger.error(f"Error removing temporary file '{path}': {e}", exc_info=True)


class UploadOrchestrator:
    """
    Runs one image upload end to end: transform, build the key, then walk the
    backend chain (remote first, local as fallback) until one accepts the bytes.
    """

    def __init__(
        self,
        backends: Sequence[StorageBackend],
        settings,
        transformer: Optional[ImageTransform] = None,
        janitor: Optional[TemporaryFileJanitor] = None,
        entity_kind: str = CHARACTER_ENTITY_KIND,
    ):
        if not backends:
            raise ValueError("UploadOrchestrator requires at least one storage backend.")
        self.backends = list(backends)
        self.settings = settings
        self.transformer = transformer or ImageTransform()
        self.janitor = janitor or TemporaryFileJanitor()
        self.entity_kind = entity_kind

    async def stage(self, file: UploadFile) -> StagedUpload:
        """Writes an incoming multipart file into the staging directory."""
        upload_dir = self.settings.UPLOAD_DIR
        try:
            os.makedirs(upload_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create upload directory '{upload_dir}': {e}", exc_info=True)
            raise LocalUploadError(f"Could not prepare upload location: {e}", operation="stage") from e

        basename = os.path.basename(file.filename or "upload") or "upload"
        file_path = os.path.join(upload_dir, f"{epoch_millis()}-{basename}")
        try:
            await file.seek(0)
            size = await asyncio.to_thread(self._write_staged, file.file, file_path)
        except OSError as e:
            logger.error(f"Failed to stage upload '{file.filename}' to '{file_path}': {e}", exc_info=True)
            self.janitor.remove(file_path)
            raise LocalUploadError(f"Could not save uploaded file '{basename}': {e}", operation="stage") from e

        logger.info(f"Staged upload '{file.filename}' ({size} bytes) at '{file_path}'")
        return StagedUpload(
            path=file_path,
            content_type=file.content_type,
            size=size,
            original_filename=file.filename,
        )

    @staticmethod
    def _write_staged(source, file_path: str) -> int:
        with open(file_path, "wb") as buffer:
            shutil.copyfileobj(source, buffer)
        return os.path.getsize(file_path)

    async def store_upload(
        self,
        file: UploadFile,
        owner_id: str,
        role: ImageRole,
        options: Optional[ImageOptions] = None,
    ) -> str:
        """Stages `file` then runs the blocking pipeline off the event loop."""
        staged = await self.stage(file)
        return await asyncio.to_thread(self.process_and_store, staged, owner_id, role, options)

    def process_and_store(
        self,
        source: StagedUpload,
        owner_id: str,
        role: ImageRole,
        options: Optional[ImageOptions] = None,
    ) -> str:
        """
        Transforms the staged file and stores it through the fallback chain.

        Args:
            source: The staged upload. Deleted before this method returns or raises.
            owner_id: Id of the character the image belongs to.
            role: profile or background.
            options: Optional overrides merged over the role defaults.

        Returns:
            str: Public URL of the stored object (CDN or local static route).

        Raises:
            DecodeError: The staged file is not a usable image. No fallback.
            AggregateUploadError: Every backend refused the object.
        """
        with self.janitor.guard(source.path):
            resolved = (options or ImageOptions()).merged_with(default_options_for(role, self.settings))
            buffer = self.transformer.transform(source.path, role, resolved)
            key = build_key(self.entity_kind, owner_id, role)
            logger.info(f"Processed {role.value} image for {self.entity_kind} {owner_id}, storing as '{key}'")
            return self._store_with_fallback(buffer, key)

    def _store_with_fallback(self, buffer: bytes, key: str) -> str:
        errors: List[StorageError] = []
        for backend in self.backends:
            try:
                url = backend.put(buffer, key, OUTPUT_CONTENT_TYPE)
            except StorageError as e:
                errors.append(e)
                if len(errors) < len(self.backends):
                    logger.warning(f"Storage backend '{backend.name}' failed for '{key}', falling back: {e}")
                else:
                    logger.error(f"Storage backend '{backend.name}' failed for '{key}': {e}")
                continue
            if errors:
                logger.info(f"Stored '{key}' on fallback backend '{backend.name}'")
            return url

        raise AggregateUploadError(f"All storage backends failed for '{key}'", errors=errors)
