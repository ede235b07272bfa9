"""Pydantic models for the mind map document model."""

from .layout import LayoutOptions, NodeSize, SubtreeBounds, TextWrapConfig
from .node import LIST_TYPES, MAX_HEADING_LEVEL, MarkdownMeta, MarkdownType, MindMapNode, NodeKind, TableData
from .normalized import ROOT_KEY, MovePosition, NormalizedData

__all__ = [
    "MindMapNode",
    "MarkdownMeta",
    "MarkdownType",
    "NodeKind",
    "TableData",
    "LIST_TYPES",
    "MAX_HEADING_LEVEL",
    "NormalizedData",
    "MovePosition",
    "ROOT_KEY",
    "LayoutOptions",
    "NodeSize",
    "SubtreeBounds",
    "TextWrapConfig",
]
