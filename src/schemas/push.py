"""Web push schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import PushSubscriptionStatus


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1, max_length=255)
    auth: str = Field(..., min_length=1, max_length=255)


class PushSubscriptionCreate(BaseModel):
    """A browser PushSubscription plus optional device info."""

    endpoint: str = Field(..., min_length=10, max_length=2048)
    keys: PushSubscriptionKeys
    user_agent: str | None = Field(None, max_length=500)
    platform: str | None = Field(None, max_length=50)
    browser: str | None = Field(None, max_length=50)


class PushSubscriptionDelete(BaseModel):
    endpoint: str = Field(..., min_length=10, max_length=2048)


class PushSubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint: str
    status: PushSubscriptionStatus
    platform: str | None
    browser: str | None
    created_at: datetime


class PushPreferencesUpdate(BaseModel):
    push_enabled: bool | None = None
    types: dict[str, bool] | None = None
    quiet_hours_enabled: bool | None = None
    quiet_start: str | None = None
    quiet_end: str | None = None
    timezone: str | None = Field(None, max_length=50)


class PushPreferencesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    push_enabled: bool
    types: dict[str, bool]
    quiet_hours_enabled: bool
    quiet_start: str | None
    quiet_end: str | None
    timezone: str


class VapidPublicKeyResponse(BaseModel):
    key_id: str
    public_key: str | None
