import json
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any
from datetime import datetime

DEFAULT_ACCENT_COLOR = "#ec4899"
DEFAULT_TEXT_COLOR = "#ffffff"
DEFAULT_RESPONSE_TIME = "< 1 min"


def parse_string_list(v: Any) -> Optional[List[str]]:
    """
    Accepts a list, a JSON array string or a comma-separated string.
    Multipart forms deliver traits/interests in either string form.
    """
    if v is None:
        return None
    if isinstance(v, str):
        text = v.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            v = parsed
        else:
            v = text.split(",")
    if not isinstance(v, (list, tuple)):
        raise ValueError("Must be a list of strings, a JSON array or a comma-separated string.")
    return [str(item).strip() for item in v if str(item).strip()]


class CharacterBaseSchema(BaseModel):
    name: Optional[str] = Field(
        default=None,
        max_length=100,
        examples=["Sophia"],
        description="Display name of the character."
    )
    description: Optional[str] = Field(
        default=None,
        max_length=5000,
        description="Short description shown on the character card."
    )
    personality: Optional[str] = Field(
        default=None,
        max_length=5000,
        description="Personality summary used to build the chat system message."
    )
    accent_color: Optional[str] = Field(default=None, max_length=20, examples=["#ec4899"])
    text_color: Optional[str] = Field(default=None, max_length=20, examples=["#ffffff"])
    age: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=200)
    response_time: Optional[str] = Field(default=None, max_length=50)
    traits: Optional[List[str]] = Field(default=None, max_length=50, examples=[["playful", "curious"]])
    interests: Optional[List[str]] = Field(default=None, max_length=50, examples=[["music", "travel"]])

    @field_validator('name', 'description', 'personality', 'accent_color', 'text_color',
                     'age', 'location', 'response_time', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty form fields as not provided."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator('traits', 'interests', mode='before')
    @classmethod
    def coerce_string_lists(cls, v):
        return parse_string_list(v)


class CharacterMutationSchema(CharacterBaseSchema):
    pass


class CharacterCreateSchema(CharacterMutationSchema):
    """
    Create payload. Required fields are checked by CharacterService so that a
    missing field is reported the same way as a missing profile image.
    """
    pass


class CharacterRecordSchema(BaseModel):
    """Full record as stored, used by the admin dashboard."""
    id: str
    name: str
    description: str
    personality: str
    image_url: str
    background_image_url: Optional[str] = None
    accent_color: str = DEFAULT_ACCENT_COLOR
    text_color: str = DEFAULT_TEXT_COLOR
    age: Optional[str] = None
    location: Optional[str] = None
    response_time: str = DEFAULT_RESPONSE_TIME
    traits: List[str] = []
    interests: List[str] = []
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class ImageRefSchema(BaseModel):
    uri: Optional[str] = None


class CharacterResponseSchema(BaseModel):
    """Public shape expected by the mobile client."""
    id: str
    name: str
    description: str
    personality: str
    image: ImageRefSchema
    background_image: ImageRefSchema
    accent_color: str
    text_color: str
    age: Optional[str] = None
    location: Optional[str] = None
    response_time: Optional[str] = None
    traits: List[str] = []
    interests: List[str] = []

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @classmethod
    def from_record(cls, record) -> "CharacterResponseSchema":
        return cls(
            id=record.id,
            name=record.name,
            description=record.description,
            personality=record.personality,
            image=ImageRefSchema(uri=record.image_url),
            background_image=ImageRefSchema(uri=record.background_image_url),
            accent_color=record.accent_color,
            text_color=record.text_color,
            age=record.age,
            location=record.location,
            response_time=record.response_time,
            traits=record.traits or [],
            interests=record.interests or [],
        )


class MessageResponseSchema(BaseModel):
    message: str
