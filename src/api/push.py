"""Web push subscription and preference endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.config import get_settings
from src.database import get_db
from src.models.user import User
from src.schemas.push import (
    PushPreferencesResponse,
    PushPreferencesUpdate,
    PushSubscriptionCreate,
    PushSubscriptionDelete,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
)
from src.services import push_service

router = APIRouter(prefix="/api/v1/push", tags=["push"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key() -> VapidPublicKeyResponse:
    """Get the VAPID public key for push notification subscription."""
    settings = get_settings()
    return VapidPublicKeyResponse(
        key_id=settings.vapid_key_id, public_key=settings.vapid_public_key
    )


@router.post(
    "/subscriptions",
    response_model=PushSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def subscribe_push(
    subscription: PushSubscriptionCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Register this browser for push notifications."""
    return push_service.register_subscription(
        db,
        current_user.id,
        subscription.endpoint,
        subscription.keys.p256dh,
        subscription.keys.auth,
        user_agent=subscription.user_agent,
        platform=subscription.platform,
        browser=subscription.browser,
    )


@router.delete("/subscriptions", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe_push(
    request: PushSubscriptionDelete,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    push_service.unregister_subscription(db, current_user.id, request.endpoint)


@router.get("/preferences", response_model=PushPreferencesResponse)
def get_push_preferences(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return push_service.get_or_create_preferences(db, current_user.id)


@router.put("/preferences", response_model=PushPreferencesResponse)
def update_push_preferences(
    update: PushPreferencesUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Update push preferences. Omitted fields are left unchanged."""
    return push_service.update_preferences(
        db, current_user.id, update.model_dump(exclude_unset=True)
    )
