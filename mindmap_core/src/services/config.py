"""Layout configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.layout import TextWrapConfig

DEFAULT_CENTER_X = 180.0
DEFAULT_CENTER_Y = 300.0
DEFAULT_FONT_SIZE = 14.0
SIDEBAR_WIDTH = 280.0
NODE_TEXT_MIN_WIDTH = 160.0
NODE_TEXT_BASE_MAX_WIDTH = 240.0


class LayoutConfig(BaseModel):
    """Runtime layout defaults loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    center_x: float = Field(default=DEFAULT_CENTER_X, description="Root center when no panel is open")
    center_y: float = Field(default=DEFAULT_CENTER_Y, description="Initial root vertical center")
    level_spacing: float = Field(
        default=30.0,
        description="Base edge-to-edge gap between a parent box and its children",
    )
    node_spacing: float = Field(default=8.0, description="Nominal spacing between siblings")
    font_size: float = Field(default=DEFAULT_FONT_SIZE, description="Global font size in px")
    text_wrap_enabled: bool = Field(default=True, description="Wrap long node text")
    text_wrap_width: Optional[float] = Field(
        default=None, description="Wrap width in px (derived from font size when unset)"
    )
    sidebar_width: float = Field(default=SIDEBAR_WIDTH, description="Width reserved by an open side panel")

    @field_validator("level_spacing", "node_spacing", "sidebar_width")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Spacing values must be >= 0")
        return value

    @field_validator("font_size")
    @classmethod
    def _positive_font(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("MINDMAP_FONT_SIZE must be positive")
        return value

    @field_validator("text_wrap_width", mode="before")
    @classmethod
    def _blank_wrap_width(cls, value: Optional[str | float]) -> Optional[str | float]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def wrap_config(self, font_size: Optional[float] = None) -> TextWrapConfig:
        """Resolve the wrapping policy for a font size."""
        size = font_size or self.font_size
        derived = max(NODE_TEXT_MIN_WIDTH, NODE_TEXT_BASE_MAX_WIDTH + (size - 14) * 12)
        width = max(NODE_TEXT_MIN_WIDTH, self.text_wrap_width) if self.text_wrap_width else derived
        return TextWrapConfig(enabled=self.text_wrap_enabled, max_width=width)


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


@lru_cache(maxsize=1)
def get_config() -> LayoutConfig:
    """Load and cache layout configuration."""
    wrap_enabled = _read_env("MINDMAP_TEXT_WRAP_ENABLED", "true").lower() not in {
        "0",
        "false",
        "no",
    }

    return LayoutConfig(
        center_x=_read_env("MINDMAP_CENTER_X", str(DEFAULT_CENTER_X)),
        center_y=_read_env("MINDMAP_CENTER_Y", str(DEFAULT_CENTER_Y)),
        level_spacing=_read_env("MINDMAP_LEVEL_SPACING", "30"),
        node_spacing=_read_env("MINDMAP_NODE_SPACING", "8"),
        font_size=_read_env("MINDMAP_FONT_SIZE", str(DEFAULT_FONT_SIZE)),
        text_wrap_enabled=wrap_enabled,
        text_wrap_width=_read_env("MINDMAP_TEXT_WRAP_WIDTH"),
        sidebar_width=_read_env("MINDMAP_SIDEBAR_WIDTH", str(SIDEBAR_WIDTH)),
    )


def reload_config() -> LayoutConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "LayoutConfig",
    "get_config",
    "reload_config",
    "DEFAULT_CENTER_X",
    "DEFAULT_CENTER_Y",
    "DEFAULT_FONT_SIZE",
    "SIDEBAR_WIDTH",
]
