"""
Pydantic models for realtime wire payloads.

Field names follow the camelCase wire format through aliases; Python code
uses the snake_case attribute names. Inbound data is expected to have
passed through ridemylay.client.normalization first, so ids are plain
strings and timestamps are ISO strings or datetimes.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NotificationType(StrEnum):
    MESSAGE = "message"
    BET_INTERACTION = "bet_interaction"
    FOLLOW = "follow"
    BET_OUTCOME = "bet_outcome"
    MENTION = "mention"


class EntityType(StrEnum):
    CHAT = "chat"
    BET = "bet"
    USER = "user"


class AttachmentType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    BET = "bet"


class InteractionType(StrEnum):
    LIKE = "like"
    COMMENT = "comment"
    SHARE = "share"
    RIDE = "ride"
    HEDGE = "hedge"


class WireModel(BaseModel):
    """Base for wire payloads: accept aliases or field names, keep unknown keys."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire aliases and JSON-safe values."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def _user_ref(value: Any) -> Any:
    """Populated user references arrive as objects; keep only the id."""
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


class NotificationPayload(WireModel):
    id: str = Field(alias="_id")
    recipient: str | None = None
    sender: str | None = None
    type: NotificationType
    entity_type: EntityType = Field(alias="entityType")
    entity_id: str = Field(alias="entityId")
    read: bool = False
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @field_validator("recipient", "sender", mode="before")
    @classmethod
    def flatten_user_ref(cls, v: Any) -> Any:
        return _user_ref(v)


class BetSnapshot(WireModel):
    status: str | None = None
    odds: float | None = None
    stake: float | None = None


class AttachmentPayload(WireModel):
    type: AttachmentType
    url: str | None = None
    bet_id: str | None = Field(default=None, alias="betId")
    bet_data: BetSnapshot | None = Field(default=None, alias="betData")


class MessagePayload(WireModel):
    id: str | None = Field(default=None, alias="_id")
    chat: str
    sender: str | None = None
    content: str = ""
    attachments: list[AttachmentPayload] = Field(default_factory=list)
    read_by: list[str] = Field(default_factory=list, alias="readBy")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @field_validator("chat", "sender", mode="before")
    @classmethod
    def flatten_ref(cls, v: Any) -> Any:
        return _user_ref(v)

    @field_validator("read_by", mode="before")
    @classmethod
    def flatten_read_by(cls, v: Any) -> Any:
        if v is None:
            return []
        return [_user_ref(item) for item in v]


class TypingPayload(WireModel):
    chat_id: str = Field(alias="chatId")
    is_typing: bool = Field(alias="isTyping")
    user_id: str | None = Field(default=None, alias="userId")
    username: str | None = None


class MessagesReadPayload(WireModel):
    chat_id: str = Field(alias="chatId")
    user_id: str = Field(alias="userId")


class ReadNotificationPayload(WireModel):
    notification_id: str = Field(alias="notificationId")


class BetTopicPayload(WireModel):
    bet_id: str = Field(alias="betId")


class BetInteractionPayload(WireModel):
    bet_id: str = Field(alias="betId")
    type: InteractionType
    user_id: str | None = Field(default=None, alias="userId")
    data: Any = None


class UserStatusPayload(WireModel):
    user_id: str = Field(alias="userId")
    username: str | None = None
    is_online: bool = Field(alias="isOnline")
    last_active: datetime | None = Field(default=None, alias="lastActive")


class NotificationCountPayload(WireModel):
    count: int


class ErrorPayload(WireModel):
    event: str | None = None
    message: str
