"""Box geometry and horizontal spacing rules shared by the layout engine."""

from __future__ import annotations

import math
from typing import Optional, Tuple

from ..models.layout import NodeSize
from ..models.node import MindMapNode
from .config import DEFAULT_FONT_SIZE
from .node_size import MERMAID_PATTERN

TOGGLE_BUTTON_WIDTH = 20
MIN_TOGGLE_TO_CHILD_SPACING = 15
DEFAULT_EDGE_SPACING = 30


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def get_node_left_x(node: MindMapNode, node_width: float) -> float:
    return node.x - node_width / 2


def get_node_right_x(node: MindMapNode, node_width: float) -> float:
    return node.x + node_width / 2


def get_node_top_y(node: MindMapNode, node_height: float) -> float:
    return node.y - node_height / 2


def get_node_bottom_y(node: MindMapNode, node_height: float) -> float:
    return node.y + node_height / 2


def get_dynamic_node_spacing(
    parent_size: NodeSize,
    child_size: NodeSize,
    base_spacing: float = DEFAULT_EDGE_SPACING,
) -> int:
    """Edge-to-edge gap between a parent and child; wider boxes repel further."""
    parent_factor = min(parent_size.width / 100, 1) * 5
    child_factor = min(child_size.width / 100, 1) * 5
    minimum = TOGGLE_BUTTON_WIDTH + MIN_TOGGLE_TO_CHILD_SPACING
    return _round_half_up(max(base_spacing + parent_factor + child_factor, minimum))


def get_toggle_button_position(
    node: MindMapNode,
    node_size: NodeSize,
    font_size: Optional[float] = None,
    on_right: bool = True,
) -> Tuple[float, float]:
    """Center of the collapse toggle drawn beside a node."""
    size = font_size or DEFAULT_FONT_SIZE
    base_margin = max(size * 1.5, 20)
    width_adjustment = 0.0

    visual_heavy = node.is_table or bool(MERMAID_PATTERN.search(node.note or ""))
    if visual_heavy:
        base_margin += 8
    else:
        if node_size.image_height > 100:
            base_margin += min((node_size.image_height - 100) * 0.08, 24)
        width_adjustment = min(max(0.0, (node_size.width - size * 4) * 0.04), 20)

    margin = min(max(base_margin + width_adjustment, 12), 35)
    if on_right:
        return get_node_right_x(node, node_size.width) + margin, node.y
    return get_node_left_x(node, node_size.width) - margin, node.y


def calculate_child_node_x(
    parent: MindMapNode,
    parent_size: NodeSize,
    child_size: NodeSize,
    edge_distance: float,
    font_size: Optional[float] = None,
) -> float:
    """Child center x: right of the parent's box and clear of its toggle."""
    basic_left = get_node_right_x(parent, parent_size.width) + edge_distance
    toggle_x, _ = get_toggle_button_position(parent, parent_size, font_size)
    required_left = toggle_x + TOGGLE_BUTTON_WIDTH / 2 + MIN_TOGGLE_TO_CHILD_SPACING
    return max(basic_left, required_left) + child_size.width / 2


__all__ = [
    "calculate_child_node_x",
    "get_dynamic_node_spacing",
    "get_node_bottom_y",
    "get_node_left_x",
    "get_node_right_x",
    "get_node_top_y",
    "get_toggle_button_position",
]
