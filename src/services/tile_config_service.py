"""Dashboard tile configuration."""

import logging
import re
from typing import Any

from sqlalchemy.orm import Session

from src.models import TileConfig
from src.services.activity_service import UUID_PATTERN
from src.services.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_CUSTOM_TILES = 5
CUSTOM_TILE_NAME_MAX_LENGTH = 20
COLOR_PATTERN = re.compile(r"^#([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")


def is_valid_color(value: Any) -> bool:
    return isinstance(value, str) and bool(COLOR_PATTERN.match(value))


def _validate_custom_tile(tile: Any) -> None:
    if not isinstance(tile, dict):
        raise ValidationError("Custom tile must be an object", code="INVALID_TILE_CONFIG")

    tile_id = tile.get("id")
    if not isinstance(tile_id, str) or not UUID_PATTERN.match(tile_id):
        raise ValidationError("Custom tile id must be a valid UUID", code="INVALID_TILE_CONFIG")

    name = tile.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Custom tile name is required", code="INVALID_TILE_CONFIG")
    if len(name) > CUSTOM_TILE_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Custom tile name must be at most {CUSTOM_TILE_NAME_MAX_LENGTH} characters",
            code="INVALID_TILE_CONFIG",
        )

    icon = tile.get("icon")
    if not isinstance(icon, str) or not icon.strip():
        raise ValidationError("Custom tile icon is required", code="INVALID_TILE_CONFIG")

    if not is_valid_color(tile.get("color")):
        raise ValidationError("Custom tile color must be a hex color", code="INVALID_COLOR")


def validate_config(config: Any) -> None:
    """Raise ValidationError if a tile config is malformed."""
    if not isinstance(config, dict):
        raise ValidationError("Invalid configuration format", code="INVALID_TILE_CONFIG")

    custom_tiles = config.get("customTiles") or []
    if not isinstance(custom_tiles, list):
        raise ValidationError("customTiles must be a list", code="INVALID_TILE_CONFIG")
    if len(custom_tiles) > MAX_CUSTOM_TILES:
        raise ValidationError(
            f"Maximum of {MAX_CUSTOM_TILES} custom tiles allowed", code="TILE_LIMIT_EXCEEDED"
        )

    seen_ids = set()
    for tile in custom_tiles:
        _validate_custom_tile(tile)
        if tile["id"] in seen_ids:
            raise ValidationError("Duplicate custom tile ID found", code="INVALID_TILE_CONFIG")
        seen_ids.add(tile["id"])

    colors = config.get("colors") or {}
    if not isinstance(colors, dict):
        raise ValidationError("colors must be an object", code="INVALID_TILE_CONFIG")
    for color in colors.values():
        if not is_valid_color(color):
            raise ValidationError(f"Invalid color format: {color}", code="INVALID_COLOR")


def get_config(db: Session, user_id: int) -> dict | None:
    """Get a user's tile config, or None if never saved."""
    tile_config = db.query(TileConfig).filter(TileConfig.user_id == user_id).first()
    return tile_config.config if tile_config else None


def save_config(db: Session, user_id: int, config: dict) -> TileConfig:
    """Validate and store a user's tile config."""
    validate_config(config)

    tile_config = db.query(TileConfig).filter(TileConfig.user_id == user_id).first()
    if tile_config is None:
        tile_config = TileConfig(user_id=user_id)
        db.add(tile_config)
    tile_config.config = config
    db.commit()
    db.refresh(tile_config)

    logger.debug(f"Tile config saved for user {user_id}")
    return tile_config
