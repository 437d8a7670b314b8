"""Tile configuration schemas.

The config itself is validated by the tile config service so that malformed
configs are reported with domain error codes.
"""

from typing import Any

from pydantic import BaseModel


class TileConfigUpdate(BaseModel):
    config: Any


class TileConfigResponse(BaseModel):
    data: dict | None
