"""Mind map node models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """How a node renders. Table nodes are atomic and never own children."""

    TEXT = "text"
    TABLE = "table"


class MarkdownType(str, Enum):
    """Markdown construct a node was parsed from."""

    HEADING = "heading"
    UNORDERED_LIST = "unordered-list"
    ORDERED_LIST = "ordered-list"
    PREFACE = "preface"


LIST_TYPES = frozenset({MarkdownType.UNORDERED_LIST, MarkdownType.ORDERED_LIST})
MAX_HEADING_LEVEL = 6


class _CamelModel(BaseModel):
    # Editor payloads arrive camelCased; Python callers use field names.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MarkdownMeta(_CamelModel):
    """Markdown structure metadata preserved from the source document."""

    type: MarkdownType = Field(..., description="Markdown construct")
    level: int = Field(default=1, ge=1, description="Heading level or list depth")
    original_format: str = Field(default="", description="Source marker (#, -, 1., ...)")
    indent_level: Optional[int] = Field(None, ge=0, description="List indent in spaces")
    line_number: int = Field(default=0, ge=0, description="Source line number")
    is_checkbox: bool = Field(default=False, description="Task-list item")
    is_checked: bool = Field(default=False, description="Task-list state")


class TableData(_CamelModel):
    """Structured table content for table-kind nodes."""

    headers: Optional[List[str]] = None
    rows: List[List[str]] = Field(default_factory=list)


class MindMapNode(_CamelModel):
    """A content node. ``children`` is only populated in the nested form."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Globally unique node id")
    text: str = Field(default="", description="Display text")
    x: float = Field(default=0.0, description="Horizontal center (layout output)")
    y: float = Field(default=0.0, description="Vertical center (layout output)")
    children: List[MindMapNode] = Field(default_factory=list)

    font_size: Optional[float] = Field(None, gt=0)
    font_family: Optional[str] = None
    font_weight: Optional[str] = None
    font_style: Optional[str] = None
    color: Optional[str] = None

    collapsed: bool = False
    note: Optional[str] = None
    custom_image_width: Optional[float] = Field(None, gt=0)
    custom_image_height: Optional[float] = Field(None, gt=0)

    kind: NodeKind = NodeKind.TEXT
    table_data: Optional[TableData] = None
    markdown_meta: Optional[MarkdownMeta] = None
    line_ending: Optional[str] = None

    @property
    def is_table(self) -> bool:
        return self.kind is NodeKind.TABLE

    @property
    def markdown_type(self) -> Optional[MarkdownType]:
        return self.markdown_meta.type if self.markdown_meta else None

    @property
    def has_visible_children(self) -> bool:
        return bool(self.children) and not self.collapsed

    def without_children(self) -> MindMapNode:
        """Shallow copy with an empty child list, as stored in normalized form."""
        return self.model_copy(update={"children": []})

    def merged(self, updates: Mapping[str, Any]) -> MindMapNode:
        """
        Return a re-validated copy with ``updates`` applied.

        Keys may be field names or their camelCase aliases. ``children`` is
        never part of node attributes and is ignored.
        """
        alias_to_name: Dict[str, str] = {
            info.alias: name for name, info in type(self).model_fields.items() if info.alias
        }
        normalized = {alias_to_name.get(key, key): value for key, value in updates.items()}
        normalized.pop("children", None)

        payload = self.model_dump(exclude={"children"})
        payload.update(normalized)
        node = type(self).model_validate(payload)
        node.children = self.children
        return node


MindMapNode.model_rebuild()


__all__ = [
    "LIST_TYPES",
    "MAX_HEADING_LEVEL",
    "MarkdownMeta",
    "MarkdownType",
    "MindMapNode",
    "NodeKind",
    "TableData",
]
