from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

OUTPUT_CONTENT_TYPE = "image/webp"
OUTPUT_EXTENSION = "webp"


class ImageRole(str, Enum):
    PROFILE = "profile"
    BACKGROUND = "background"


class ImageOptions(BaseModel):
    """Caller overrides for an image transform. Unset fields fall back to role defaults."""
    width: Optional[int] = Field(default=None, gt=0, le=4096)
    height: Optional[int] = Field(default=None, gt=0, le=4096)
    quality: Optional[int] = Field(default=None, ge=1, le=100)

    def merged_with(self, defaults: "ImageOptions") -> "ImageOptions":
        return ImageOptions(
            width=self.width or defaults.width,
            height=self.height or defaults.height,
            quality=self.quality or defaults.quality,
        )


class StagedUpload(BaseModel):
    """A multipart upload written to the temp directory, owned by the orchestrator."""
    path: str
    content_type: Optional[str] = None
    size: int = 0
    original_filename: Optional[str] = None

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str):
        if not v or not v.strip():
            raise ValueError("Staged upload path must not be empty.")
        return v


class StorageEntry(BaseModel):
    """One row of a storage listing, as returned by the Bunny storage API."""
    name: str = Field(..., alias="ObjectName")
    is_directory: bool = Field(default=False, alias="IsDirectory")
    length: Optional[int] = Field(default=None, alias="Length")
    last_changed: Optional[datetime] = Field(default=None, alias="LastChanged")

    class Config:
        populate_by_name = True
