"""Service layer: normalized tree store, validation, and layout."""

from .config import LayoutConfig, get_config, reload_config
from .layout_engine import (
    HierarchicalLayout,
    LayoutCache,
    count_visible_nodes,
    get_subtree_bounds,
    layout_forest,
    simple_hierarchical_layout,
)
from .node_size import NodeSizeEstimator, estimate_node_size
from .tree_queries import (
    find_node_in_roots,
    get_node_path,
    get_parent_id,
    get_sibling_ids,
    is_root_node,
)
from .tree_store import (
    CannotDeleteLastRootError,
    DuplicateNodeIdError,
    InconsistentTreeError,
    InvalidParentKindError,
    InvalidUpdateError,
    MoveResult,
    NodeNotFoundError,
    ParentNotFoundError,
    SiblingOrderError,
    TreeStoreError,
    add_normalized_node,
    add_root_sibling_node,
    add_sibling_normalized_node,
    change_sibling_order_normalized,
    delete_normalized_node,
    denormalize_tree_data,
    find_normalized_node,
    move_node_with_position_normalized,
    move_normalized_node,
    normalize_tree_data,
    update_normalized_node,
)
from .tree_validation import (
    check_integrity,
    validate_node_movement,
    validate_node_movement_with_position,
)

__all__ = [
    "LayoutConfig",
    "get_config",
    "reload_config",
    "normalize_tree_data",
    "denormalize_tree_data",
    "find_normalized_node",
    "update_normalized_node",
    "delete_normalized_node",
    "add_normalized_node",
    "add_sibling_normalized_node",
    "add_root_sibling_node",
    "move_normalized_node",
    "move_node_with_position_normalized",
    "change_sibling_order_normalized",
    "MoveResult",
    "TreeStoreError",
    "NodeNotFoundError",
    "ParentNotFoundError",
    "DuplicateNodeIdError",
    "CannotDeleteLastRootError",
    "InvalidParentKindError",
    "SiblingOrderError",
    "InvalidUpdateError",
    "InconsistentTreeError",
    "validate_node_movement",
    "validate_node_movement_with_position",
    "check_integrity",
    "is_root_node",
    "get_parent_id",
    "get_sibling_ids",
    "get_node_path",
    "find_node_in_roots",
    "NodeSizeEstimator",
    "estimate_node_size",
    "HierarchicalLayout",
    "LayoutCache",
    "simple_hierarchical_layout",
    "layout_forest",
    "get_subtree_bounds",
    "count_visible_nodes",
]
