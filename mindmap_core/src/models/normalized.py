"""Normalized (flat, relational) representation of a mind map forest."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from .node import MindMapNode

# Pseudo-parent key in children_map mirroring root_node_ids.
ROOT_KEY = "root"


class MovePosition(str, Enum):
    """Where a moved node lands relative to its target."""

    BEFORE = "before"
    AFTER = "after"
    CHILD = "child"


class NormalizedData(BaseModel):
    """
    Canonical store form: nodes plus parent/child index maps.

    Instances are treated as immutable. Store operations return new instances
    built with ``model_copy(update=...)`` so unchanged maps are shared.
    """

    nodes: Dict[str, MindMapNode] = Field(default_factory=dict, description="Node id -> node (no children)")
    root_node_ids: List[str] = Field(default_factory=list, description="Ordered root ids")
    parent_map: Dict[str, str] = Field(default_factory=dict, description="Child id -> parent id")
    children_map: Dict[str, List[str]] = Field(
        default_factory=dict, description="Parent id -> ordered child ids (plus 'root')"
    )

    @property
    def is_empty(self) -> bool:
        return not self.nodes


__all__ = ["MovePosition", "NormalizedData", "ROOT_KEY"]
