"""Layout input and output models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeSize(BaseModel):
    """Content box of a rendered node."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)
    image_height: float = Field(default=0.0, ge=0)


class SubtreeBounds(BaseModel):
    """Vertical extent covered by a node and its visible descendants."""

    model_config = ConfigDict(frozen=True)

    min_y: float
    max_y: float

    @property
    def center_y(self) -> float:
        return (self.min_y + self.max_y) / 2


class TextWrapConfig(BaseModel):
    """Text wrapping policy used when estimating node sizes."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    max_width: float = Field(default=240.0, gt=0)


class LayoutOptions(BaseModel):
    """
    Per-call layout settings.

    Unset values fall back to ``LayoutConfig`` (see ``services.config``).
    ``sidebar_collapsed`` and ``active_view`` describe UI chrome that shifts
    the default horizontal center when a side panel is open.
    """

    center_x: Optional[float] = None
    center_y: Optional[float] = None
    level_spacing: Optional[float] = Field(None, ge=0)
    node_spacing: Optional[float] = Field(None, ge=0)
    font_size: Optional[float] = Field(None, gt=0)
    wrap: Optional[TextWrapConfig] = None
    sidebar_collapsed: bool = False
    active_view: Optional[str] = None


__all__ = ["LayoutOptions", "NodeSize", "SubtreeBounds", "TextWrapConfig"]
