# backend/app/models/conversation_models.py

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator


DEFAULT_TITLE = "New Conversation"
MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10000

MessageRole = Literal["user", "assistant", "system", "error"]

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_TITLE_LENGTH)]
Content = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_CONTENT_LENGTH)]

# conversationId is a UUID string
CONVERSATION_ID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


def as_stored(value: datetime) -> datetime:
    """Mongo keeps UTC at millisecond precision; shape values the same way."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def utcnow() -> datetime:
    return as_stored(datetime.now(timezone.utc))


# -------------------------
# Message metadata (open mapping)
# -------------------------
class MessageMetadata(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())

    model: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]] = None
    tokens: Optional[int] = Field(None, ge=0)


# -------------------------
# Stored documents
# -------------------------
class Message(BaseModel):
    content: Content
    role: MessageRole = "user"
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _check_metadata(cls, value):
        if value is None:
            return {}
        return MessageMetadata.model_validate(value).model_dump(exclude_none=True)


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(default_factory=lambda: str(uuid4()), alias="conversationId")
    user_id: str = Field(..., min_length=1, alias="userId")
    title: Title = DEFAULT_TITLE
    messages: List[Message] = Field(default_factory=list)
    is_active: bool = Field(True, alias="isActive")
    is_deleted: bool = Field(False, alias="isDeleted")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# -------------------------
# Request bodies
# -------------------------
class CreateConversationIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[Title] = None
    initial_message: Optional[Content] = Field(None, alias="initialMessage")


class UpdateConversationIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[Title] = None
    is_active: Optional[bool] = Field(None, alias="isActive")


class SendMessageIn(BaseModel):
    content: Content
    role: MessageRole = "user"
    metadata: Optional[MessageMetadata] = None
