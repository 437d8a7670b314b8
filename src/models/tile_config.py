"""Tile configuration model."""

from sqlalchemy import Column, ForeignKey, Integer

from src.database import Base, JSONType
from src.models.mixins import TimestampMixin


class TileConfig(Base, TimestampMixin):
    """Dashboard layout for a user: order, sizes, hidden tiles, colors and custom tiles."""

    __tablename__ = "tile_configs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    config = Column(JSONType, nullable=False, default=dict)
