"""Hierarchical right-hand layout for mind map trees.

Children are stacked top-to-bottom to the right of their parent; every parent
is re-centered on the vertical extent of its visible descendants. Sizes,
subtree heights and subtree bounds are memoized per layout pass only, so a
changed node can never be served stale geometry by a later call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.layout import LayoutOptions, NodeSize, SubtreeBounds, TextWrapConfig
from ..models.node import MindMapNode
from .config import LayoutConfig, get_config
from .node_geometry import (
    calculate_child_node_x,
    get_dynamic_node_spacing,
    get_node_bottom_y,
    get_node_top_y,
)
from .node_size import NodeSizeEstimator, estimate_node_size

logger = logging.getLogger(__name__)

SIDEBAR_MARGIN = 12
MIN_SIBLING_GAP = 2
ROOT_BASE_SPACING = 8
ROOT_MAX_COMPLEXITY_SPACING = 16
TABLE_STACK_MARGIN = 8

SizeKey = Tuple[str, str, str, float]
HeightKey = Tuple[str, bool, int]
BoundsKey = Tuple[str, float, bool]


@dataclass
class LayoutCache:
    """Memo tables scoped to a single layout pass."""

    sizes: Dict[SizeKey, NodeSize] = field(default_factory=dict)
    heights: Dict[HeightKey, float] = field(default_factory=dict)
    bounds: Dict[BoundsKey, SubtreeBounds] = field(default_factory=dict)


def resolve_center_x(options: LayoutOptions, config: LayoutConfig) -> float:
    """Root x, shifted right of an open side panel when none is given."""
    if options.center_x is not None:
        return options.center_x
    if options.active_view and not options.sidebar_collapsed:
        return config.sidebar_width + SIDEBAR_MARGIN
    return config.center_x


def count_visible_nodes(node: MindMapNode) -> int:
    """Node count of a subtree, not descending into collapsed nodes."""
    count = 0
    stack = [node]
    while stack:
        current = stack.pop()
        count += 1
        if current.has_visible_children:
            stack.extend(current.children)
    return count


def shift_tree(node: MindMapNode, dy: float) -> None:
    """Translate a positioned tree vertically, in place."""
    stack = [node]
    while stack:
        current = stack.pop()
        current.y += dy
        stack.extend(current.children)


def clone_tree(root: MindMapNode) -> MindMapNode:
    """
    Copy every node of a tree so positions can be written freely.

    Attribute values are shared with the source; only ``x``, ``y`` and
    ``children`` of the copies are ever reassigned.
    """
    clone = root.model_copy()
    stack = [(root, clone)]
    while stack:
        source, target = stack.pop()
        target.children = [child.model_copy() for child in source.children]
        stack.extend(zip(source.children, target.children))
    return clone


class HierarchicalLayout:
    """Layout pass runner. One instance may lay out many trees."""

    def __init__(
        self,
        options: Optional[LayoutOptions] = None,
        config: Optional[LayoutConfig] = None,
        size_estimator: Optional[NodeSizeEstimator] = None,
    ) -> None:
        self.options = options or LayoutOptions()
        self.config = config or get_config()
        self.size_estimator = size_estimator or estimate_node_size

        self.center_x = resolve_center_x(self.options, self.config)
        self.center_y = (
            self.options.center_y if self.options.center_y is not None else self.config.center_y
        )
        self.level_spacing = (
            self.options.level_spacing
            if self.options.level_spacing is not None
            else self.config.level_spacing
        )
        node_spacing = (
            self.options.node_spacing
            if self.options.node_spacing is not None
            else self.config.node_spacing
        )
        self.sibling_gap = max(node_spacing * 0.5, MIN_SIBLING_GAP)
        self.font_size = self.options.font_size or self.config.font_size
        self.wrap: TextWrapConfig = self.options.wrap or self.config.wrap_config(self.font_size)
        self.cache = LayoutCache()

    # ========================================
    # Memoized measurements
    # ========================================

    def node_size(self, node: MindMapNode) -> NodeSize:
        table_key = node.table_data.model_dump_json() if node.table_data else ""
        key = (node.id, node.text, table_key, self.font_size)
        cached = self.cache.sizes.get(key)
        if cached is None:
            cached = self.size_estimator(node, self.font_size, self.wrap)
            self.cache.sizes[key] = cached
        return cached

    def subtree_height(self, node: MindMapNode) -> float:
        """Vertical space taken by a node and its visible descendants."""
        key = (node.id, node.collapsed, len(node.children))
        cached = self.cache.heights.get(key)
        if cached is not None:
            return cached

        own_height = self.node_size(node).height
        if not node.has_visible_children:
            height = own_height
        else:
            children_height = 0.0
            for child in node.children:
                children_height += self.subtree_height(child)
            children_height += self.sibling_gap * (len(node.children) - 1)
            height = max(own_height, children_height)

        self.cache.heights[key] = height
        return height

    def subtree_bounds(self, node: MindMapNode) -> SubtreeBounds:
        """Top and bottom of the content boxes of a node and its visible descendants."""
        key = (node.id, node.y, node.collapsed)
        cached = self.cache.bounds.get(key)
        if cached is not None:
            return cached

        height = self.node_size(node).height
        min_y = get_node_top_y(node, height)
        max_y = get_node_bottom_y(node, height)
        if node.has_visible_children:
            for child in node.children:
                child_bounds = self.subtree_bounds(child)
                min_y = min(min_y, child_bounds.min_y)
                max_y = max(max_y, child_bounds.max_y)

        bounds = SubtreeBounds(min_y=min_y, max_y=max_y)
        self.cache.bounds[key] = bounds
        return bounds

    def stacking_bounds(self, node: MindMapNode) -> SubtreeBounds:
        """
        Vertical extent of a positioned tree as seen by forest stacking.

        Same visible boxes as ``subtree_bounds``, except table nodes are padded
        by ``TABLE_STACK_MARGIN`` above and below so neighbouring trees keep
        clear of the table frame.
        """
        min_y = float("inf")
        max_y = float("-inf")
        stack = [node]
        while stack:
            current = stack.pop()
            height = self.node_size(current).height
            margin = TABLE_STACK_MARGIN if current.is_table else 0
            min_y = min(min_y, get_node_top_y(current, height) - margin)
            max_y = max(max_y, get_node_bottom_y(current, height) + margin)
            if current.has_visible_children:
                stack.extend(current.children)
        return SubtreeBounds(min_y=min_y, max_y=max_y)

    # ========================================
    # Placement
    # ========================================

    def layout(self, root: MindMapNode) -> MindMapNode:
        """Return a positioned copy of ``root``; the input is untouched."""
        self.cache = LayoutCache()
        positioned = clone_tree(root)
        positioned.x = self.center_x
        positioned.y = self.center_y
        self._place_children(positioned, 0.0)

        logger.debug(
            f"Laid out tree {root.id}: {len(self.cache.sizes)} sizes, "
            f"{len(self.cache.heights)} subtree heights computed"
        )
        return positioned

    def child_x(self, parent: MindMapNode, child: MindMapNode) -> float:
        parent_size = self.node_size(parent)
        child_size = self.node_size(child)
        edge_distance = get_dynamic_node_spacing(parent_size, child_size, self.level_spacing)
        return calculate_child_node_x(parent, parent_size, child_size, edge_distance, self.font_size)

    def _place_children(self, node: MindMapNode, y_offset: float) -> None:
        if not node.has_visible_children:
            return

        heights = [self.subtree_height(child) for child in node.children]
        total_height = sum(heights) + self.sibling_gap * (len(heights) - 1)

        cursor = -total_height / 2
        for child, height in zip(node.children, heights):
            center_offset = cursor + height / 2
            child.x = self.child_x(node, child)
            child.y = self.center_y + y_offset + center_offset
            self._place_children(child, y_offset + center_offset)
            cursor += height + self.sibling_gap

        node.y = _merge_bounds(self.subtree_bounds(child) for child in node.children).center_y


def _merge_bounds(bounds: Iterable[SubtreeBounds]) -> SubtreeBounds:
    items = list(bounds)
    return SubtreeBounds(
        min_y=min(item.min_y for item in items),
        max_y=max(item.max_y for item in items),
    )


def simple_hierarchical_layout(
    root: MindMapNode,
    options: Optional[LayoutOptions] = None,
    config: Optional[LayoutConfig] = None,
    size_estimator: Optional[NodeSizeEstimator] = None,
) -> MindMapNode:
    """Lay out a single tree with a fresh pass-scoped cache."""
    return HierarchicalLayout(options, config, size_estimator).layout(root)


def layout_forest(
    root_nodes: Iterable[MindMapNode],
    options: Optional[LayoutOptions] = None,
    config: Optional[LayoutConfig] = None,
    size_estimator: Optional[NodeSizeEstimator] = None,
) -> List[MindMapNode]:
    """
    Lay out every root, then stack each tree below the previous one.

    The gap between trees grows with the larger visible node count of the
    two neighbours, capped at ``ROOT_BASE_SPACING + ROOT_MAX_COMPLEXITY_SPACING``.
    """
    engine = HierarchicalLayout(options, config, size_estimator)
    placed: List[MindMapNode] = []
    previous_bottom = 0.0

    for root in root_nodes:
        positioned = engine.layout(root)
        if placed:
            complexity = max(count_visible_nodes(placed[-1]), count_visible_nodes(positioned))
            spacing = ROOT_BASE_SPACING + min(complexity * 0.5, ROOT_MAX_COMPLEXITY_SPACING)
            offset = previous_bottom + spacing - engine.stacking_bounds(positioned).min_y
            shift_tree(positioned, offset)
        previous_bottom = engine.stacking_bounds(positioned).max_y
        placed.append(positioned)

    logger.debug(f"Laid out forest of {len(placed)} root(s)")
    return placed


def get_subtree_bounds(
    root: MindMapNode,
    options: Optional[LayoutOptions] = None,
    config: Optional[LayoutConfig] = None,
    size_estimator: Optional[NodeSizeEstimator] = None,
) -> SubtreeBounds:
    """Bounds of an already positioned tree, table nodes padded for stacking."""
    return HierarchicalLayout(options, config, size_estimator).stacking_bounds(root)


__all__ = [
    "HierarchicalLayout",
    "LayoutCache",
    "TABLE_STACK_MARGIN",
    "clone_tree",
    "count_visible_nodes",
    "get_subtree_bounds",
    "layout_forest",
    "resolve_center_x",
    "shift_tree",
    "simple_hierarchical_layout",
]
