from typing import List, Literal, Optional
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


class ConversationMessage(BaseModel):
    """
    One prior turn. The mobile client sends either `{role, content}` or the
    older `{isUser, text}` shape; both are normalized to role/content.
    """
    role: Literal["user", "assistant"] = "user"
    content: str = ""

    @model_validator(mode='before')
    @classmethod
    def normalize_legacy_shape(cls, data):
        if isinstance(data, dict) and "role" not in data:
            return {
                "role": "user" if data.get("isUser") else "assistant",
                "content": data.get("text") or data.get("content") or "",
            }
        return data


class ChatRequest(BaseModel):
    character_id: Optional[str] = Field(default=None, examples=["4821937562"])
    message: Optional[str] = Field(default=None, examples=["Hi! How was your day?"])
    conversation: List[ConversationMessage] = Field(
        default_factory=list,
        description="Previous turns, oldest first. Only the most recent ones are sent to the model."
    )

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ChatCharacterInfo(BaseModel):
    id: str
    name: str


class ChatResponse(BaseModel):
    response: str
    character: ChatCharacterInfo
    fallback: bool = False


class SystemMessageResponse(BaseModel):
    system_message: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LlmHealthResponse(BaseModel):
    status: str
    model: Optional[str] = None
    timestamp: str
    error: Optional[str] = None
