"""Notification schemas."""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    """A single notification."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    actor_id: int | None
    type: str
    title: str
    body: str
    # The ORM attribute is "payload"; "metadata" is reserved on declarative models
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("payload", "metadata")
    )
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    page_size: int
    has_more: bool


class UnreadCountResponse(BaseModel):
    unread_count: int
