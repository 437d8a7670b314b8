"""Dashboard tile configuration endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models.user import User
from src.schemas.tile_config import TileConfigResponse, TileConfigUpdate
from src.services import tile_config_service
from src.services.privacy import get_visible_user

router = APIRouter(prefix="/api/v1/tile-config", tags=["tile-config"])


@router.get("", response_model=TileConfigResponse)
def get_tile_config(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get the current user's tile config. Data is null until one is saved."""
    return TileConfigResponse(data=tile_config_service.get_config(db, current_user.id))


@router.put("", response_model=TileConfigResponse)
def save_tile_config(
    request: TileConfigUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    tile_config = tile_config_service.save_config(db, current_user.id, request.config)
    return TileConfigResponse(data=tile_config.config)


@router.get("/{username}", response_model=TileConfigResponse)
def get_user_tile_config(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get another user's tile config, so their dashboard renders with their tiles."""
    user = get_visible_user(db, username, current_user.id)
    return TileConfigResponse(data=tile_config_service.get_config(db, user.id))
