"""
Error taxonomy for the character backend.

The upload pipeline raises these instead of HTTPException so that storage
backends and the orchestrator stay independent of the web layer. `app.main`
maps them onto HTTP responses.
"""

from typing import List, Optional


class CharacterAppError(Exception):
    """Base class for all domain errors raised by this application."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.message} (operation: {self.operation})"
        return self.message


class ValidationError(CharacterAppError):
    """Missing or invalid input, rejected before any storage I/O."""


class DecodeError(CharacterAppError):
    """The uploaded bytes are not a decodable/encodable image."""


class StorageError(CharacterAppError):
    """Base class for storage backend failures."""


class RemoteStorageError(StorageError):
    """Remote object storage failed (network, auth, non-2xx, timeout)."""

    def __init__(self, message: str, operation: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, operation=operation)
        self.status_code = status_code


class RemoteUploadError(RemoteStorageError):
    """A PUT to remote object storage did not succeed."""


class LocalUploadError(StorageError):
    """Writing to the local fallback directory failed."""


class AggregateUploadError(StorageError):
    """Every backend in the fallback chain failed for one upload."""

    def __init__(self, message: str, errors: List[StorageError], operation: Optional[str] = "put"):
        super().__init__(message, operation=operation)
        self.errors = list(errors)

    def __str__(self) -> str:
        causes = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        return f"{self.message} [{causes}]"


class LLMServiceError(CharacterAppError):
    """The chat completion provider could not produce a reply."""
