"""Normalized tree store for mind map documents.

Every operation takes a ``NormalizedData`` and returns a new one; inputs are
never mutated and untouched maps are shared with the result. Hard failures
raise ``TreeStoreError`` subclasses. Moves report expected, user-triggered
rejections through ``MoveResult`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from ..models.node import MarkdownType, MindMapNode
from ..models.normalized import ROOT_KEY, MovePosition, NormalizedData
from .tree_validation import (
    is_descendant,
    validate_node_movement,
    validate_node_movement_with_position,
)

logger = logging.getLogger(__name__)


class TreeStoreError(Exception):
    """Raised when a tree store operation cannot be applied."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NodeNotFoundError(TreeStoreError):
    """A referenced node id does not exist."""


class ParentNotFoundError(NodeNotFoundError):
    """A node's parent (or a requested parent) does not exist."""


class DuplicateNodeIdError(TreeStoreError):
    """A new node reuses an existing id."""


class CannotDeleteLastRootError(TreeStoreError):
    """The only remaining root cannot be deleted."""


class InvalidParentKindError(TreeStoreError):
    """The requested parent cannot own children (e.g. table nodes)."""


class SiblingOrderError(TreeStoreError):
    """Sibling reordering was requested across different parents."""


class InvalidUpdateError(TreeStoreError):
    """An attribute update tried to change structural identity."""


class InconsistentTreeError(TreeStoreError):
    """The structure violates its own invariants."""


@dataclass
class MoveResult:
    """Outcome of a move. ``data`` is set on success, ``reason`` on failure."""

    success: bool
    data: Optional[NormalizedData] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, data: NormalizedData) -> "MoveResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, reason: str) -> "MoveResult":
        logger.debug(f"Move rejected: {reason}")
        return cls(success=False, reason=reason)


TABLE_PARENT_REASON = "Table nodes cannot have child nodes"
PREFACE_PARENT_REASON = "Preface nodes cannot have child nodes"
CYCLE_REASON = "A node cannot be moved under its own descendant"
SELF_PARENT_REASON = "A node cannot be moved under itself"
ROOT_MOVE_REASON = "Root nodes cannot be moved"


# ========================================
# Conversion
# ========================================


def normalize_tree_data(root_nodes: Optional[Sequence[MindMapNode]]) -> NormalizedData:
    """
    Flatten a nested forest into the normalized form (pre-order DFS).

    Raises DuplicateNodeIdError when an id repeats anywhere in the forest.
    """
    if not root_nodes:
        return NormalizedData()

    nodes: Dict[str, MindMapNode] = {}
    parent_map: Dict[str, str] = {}
    children_map: Dict[str, List[str]] = {}

    def traverse(node: MindMapNode, parent_id: Optional[str] = None) -> None:
        if node.id in nodes or node.id == ROOT_KEY:
            logger.error(f"Normalize hit duplicate node id {node.id}")
            raise DuplicateNodeIdError(f"Node already exists: {node.id}", {"node_id": node.id})
        nodes[node.id] = node.without_children()
        if parent_id:
            parent_map[node.id] = parent_id
        children_map[node.id] = [child.id for child in node.children]
        for child in node.children:
            traverse(child, node.id)

    for root in root_nodes:
        traverse(root)

    root_ids = [root.id for root in root_nodes]
    children_map[ROOT_KEY] = list(root_ids)

    return NormalizedData(
        nodes=nodes,
        root_node_ids=root_ids,
        parent_map=parent_map,
        children_map=children_map,
    )


def denormalize_tree_data(data: NormalizedData) -> List[MindMapNode]:
    """Rebuild the nested forest; raises NodeNotFoundError on dangling ids."""

    def build(node_id: str) -> MindMapNode:
        node = data.nodes.get(node_id)
        if node is None:
            logger.error(f"Denormalize hit dangling node id {node_id}")
            raise NodeNotFoundError(f"Node not found: {node_id}", {"node_id": node_id})
        children = [build(child_id) for child_id in data.children_map.get(node_id, [])]
        return node.model_copy(update={"children": children})

    return [build(root_id) for root_id in data.root_node_ids]


# ========================================
# Node Operations
# ========================================


def find_normalized_node(data: NormalizedData, node_id: str) -> Optional[MindMapNode]:
    """O(1) lookup. Returns None when the id is unknown."""
    return data.nodes.get(node_id)


def update_normalized_node(
    data: NormalizedData, node_id: str, updates: Mapping[str, Any]
) -> NormalizedData:
    """Merge attribute ``updates`` onto a node. Structure is never affected."""
    existing = data.nodes.get(node_id)
    if existing is None:
        raise NodeNotFoundError(f"Node not found: {node_id}", {"node_id": node_id})
    if "id" in updates and updates["id"] != node_id:
        raise InvalidUpdateError(
            "Node ids are immutable",
            {"node_id": node_id, "requested_id": updates["id"]},
        )

    updated = existing.merged(updates)
    logger.debug(f"Updated node {node_id}: {sorted(updates)}")
    return data.model_copy(update={"nodes": {**data.nodes, node_id: updated}})


def delete_normalized_node(data: NormalizedData, node_id: str) -> NormalizedData:
    """Remove a node and all of its descendants."""
    if node_id not in data.nodes:
        raise NodeNotFoundError(f"Node not found: {node_id}", {"node_id": node_id})

    is_root = node_id in data.root_node_ids
    if is_root:
        if len(data.root_node_ids) <= 1:
            raise CannotDeleteLastRootError(
                "Cannot delete the last root node", {"node_id": node_id}
            )
        parent_id = ROOT_KEY
    else:
        parent_id = data.parent_map.get(node_id)
        if not parent_id:
            logger.error(f"Node {node_id} is neither a root nor parented")
            raise InconsistentTreeError(
                f"Parent not found for node: {node_id}", {"node_id": node_id}
            )

    doomed = _collect_subtree(data, node_id)

    nodes = {key: value for key, value in data.nodes.items() if key not in doomed}
    parent_map = {key: value for key, value in data.parent_map.items() if key not in doomed}
    children_map = {key: value for key, value in data.children_map.items() if key not in doomed}
    children_map[parent_id] = [cid for cid in children_map.get(parent_id, []) if cid != node_id]

    root_ids = data.root_node_ids
    if is_root:
        root_ids = [rid for rid in root_ids if rid != node_id]

    logger.debug(f"Deleted node {node_id} with {len(doomed) - 1} descendant(s)")
    return data.model_copy(
        update={
            "nodes": nodes,
            "parent_map": parent_map,
            "children_map": children_map,
            "root_node_ids": root_ids,
        }
    )


def add_normalized_node(
    data: NormalizedData, parent_id: str, new_node: MindMapNode
) -> NormalizedData:
    """Append ``new_node`` (childless) as the last child of ``parent_id``."""
    _ensure_new_id(data, new_node)

    parent = data.nodes.get(parent_id)
    if parent is None:
        raise ParentNotFoundError(f"Parent node not found: {parent_id}", {"parent_id": parent_id})
    if parent.is_table:
        raise InvalidParentKindError(TABLE_PARENT_REASON, {"parent_id": parent_id})

    logger.debug(f"Adding node {new_node.id} under {parent_id}")
    return data.model_copy(
        update={
            "nodes": {**data.nodes, new_node.id: new_node.without_children()},
            "parent_map": {**data.parent_map, new_node.id: parent_id},
            "children_map": {
                **data.children_map,
                parent_id: [*data.children_map.get(parent_id, []), new_node.id],
                new_node.id: [],
            },
        }
    )


def add_sibling_normalized_node(
    data: NormalizedData,
    sibling_id: str,
    new_node: MindMapNode,
    insert_after: bool = True,
) -> NormalizedData:
    """Insert ``new_node`` next to a non-root sibling."""
    _ensure_new_id(data, new_node)

    parent_id = data.parent_map.get(sibling_id)
    if not parent_id:
        raise ParentNotFoundError(
            f"Parent not found for sibling node: {sibling_id}", {"sibling_id": sibling_id}
        )

    siblings = data.children_map.get(parent_id, [])
    if sibling_id not in siblings:
        raise NodeNotFoundError(
            f"Sibling node not found in parent's children: {sibling_id}",
            {"sibling_id": sibling_id, "parent_id": parent_id},
        )

    new_siblings = _insert_next_to(siblings, sibling_id, new_node.id, insert_after)

    logger.debug(f"Adding node {new_node.id} {'after' if insert_after else 'before'} {sibling_id}")
    return data.model_copy(
        update={
            "nodes": {**data.nodes, new_node.id: new_node.without_children()},
            "parent_map": {**data.parent_map, new_node.id: parent_id},
            "children_map": {**data.children_map, parent_id: new_siblings, new_node.id: []},
        }
    )


def add_root_sibling_node(
    data: NormalizedData,
    sibling_root_id: str,
    new_node: MindMapNode,
    insert_after: bool = True,
) -> NormalizedData:
    """Insert a new root next to an existing root."""
    _ensure_new_id(data, new_node)

    if sibling_root_id not in data.root_node_ids:
        raise NodeNotFoundError(
            f"Root sibling node not found: {sibling_root_id}", {"sibling_id": sibling_root_id}
        )

    root_ids = _insert_next_to(data.root_node_ids, sibling_root_id, new_node.id, insert_after)

    logger.debug(f"Adding root {new_node.id} next to {sibling_root_id}")
    return data.model_copy(
        update={
            "nodes": {**data.nodes, new_node.id: new_node.without_children()},
            "root_node_ids": root_ids,
            "children_map": {**data.children_map, ROOT_KEY: list(root_ids), new_node.id: []},
        }
    )


# ========================================
# Moves
# ========================================


def move_normalized_node(
    data: NormalizedData, node_id: str, new_parent_id: str
) -> MoveResult:
    """Reparent ``node_id`` as the last child of ``new_parent_id``."""
    if node_id in data.root_node_ids:
        return MoveResult.fail(ROOT_MOVE_REASON)

    old_parent_id = data.parent_map.get(node_id)
    if not old_parent_id:
        return MoveResult.fail(f"Parent of node not found: {node_id}")

    target_parent = data.nodes.get(new_parent_id)
    if target_parent is None:
        return MoveResult.fail(f"Move target not found: {new_parent_id}")
    if target_parent.is_table:
        return MoveResult.fail(TABLE_PARENT_REASON)
    if target_parent.markdown_type is MarkdownType.PREFACE:
        return MoveResult.fail(PREFACE_PARENT_REASON)

    is_valid, reason = validate_node_movement(data, node_id, new_parent_id)
    if not is_valid:
        return MoveResult.fail(reason or "The node cannot be moved there")

    if new_parent_id == node_id:
        return MoveResult.fail(SELF_PARENT_REASON)
    if is_descendant(data, node_id, new_parent_id):
        return MoveResult.fail(CYCLE_REASON)

    if old_parent_id == new_parent_id:
        return MoveResult.ok(data)

    if data.nodes[node_id].is_table:
        others = [cid for cid in data.children_map.get(new_parent_id, []) if cid != node_id]
        if others:
            return MoveResult.fail(
                "Table nodes cannot be appended to a parent with other children (first position only)"
            )

    logger.debug(f"Moving node {node_id} from {old_parent_id} to {new_parent_id}")
    return MoveResult.ok(
        data.model_copy(
            update={
                "parent_map": {**data.parent_map, node_id: new_parent_id},
                "children_map": {
                    **data.children_map,
                    old_parent_id: [cid for cid in data.children_map[old_parent_id] if cid != node_id],
                    new_parent_id: [*data.children_map.get(new_parent_id, []), node_id],
                },
            }
        )
    )


def move_node_with_position_normalized(
    data: NormalizedData,
    node_id: str,
    target_id: str,
    position: MovePosition | str,
) -> MoveResult:
    """Move ``node_id`` before, after, or into ``target_id``."""
    position = MovePosition(position)

    if node_id in data.root_node_ids:
        return MoveResult.fail(ROOT_MOVE_REASON)

    old_parent_id = data.parent_map.get(node_id)
    if not old_parent_id:
        return MoveResult.fail(f"Parent of node not found: {node_id}")

    if target_id not in data.nodes:
        return MoveResult.fail(f"Target node not found: {target_id}")

    if position is MovePosition.CHILD:
        new_parent_id = target_id
        insertion_index = len(data.children_map.get(new_parent_id, []))
    else:
        new_parent_id = data.parent_map.get(target_id)
        if not new_parent_id:
            return MoveResult.fail(f"Target node has no parent: {target_id}")
        target_index = _index_of(data.children_map.get(new_parent_id, []), target_id)
        if target_index == -1:
            return MoveResult.fail(f"Target node is missing from its parent's children: {target_id}")
        insertion_index = target_index if position is MovePosition.BEFORE else target_index + 1

    new_parent = data.nodes[new_parent_id]
    if new_parent.is_table:
        return MoveResult.fail(TABLE_PARENT_REASON)
    if new_parent.markdown_type is MarkdownType.PREFACE:
        return MoveResult.fail(PREFACE_PARENT_REASON)

    is_valid, reason = validate_node_movement_with_position(data, node_id, target_id, position)
    if not is_valid:
        return MoveResult.fail(reason or "The node cannot be moved there")

    if new_parent_id == node_id:
        return MoveResult.fail(SELF_PARENT_REASON)
    if is_descendant(data, node_id, new_parent_id):
        return MoveResult.fail(CYCLE_REASON)

    new_siblings = list(data.children_map.get(new_parent_id, []))
    if old_parent_id == new_parent_id:
        current_index = _index_of(new_siblings, node_id)
        if current_index != -1:
            del new_siblings[current_index]
            if insertion_index > current_index:
                insertion_index -= 1
    new_siblings.insert(insertion_index, node_id)

    if data.nodes[node_id].is_table:
        others = [cid for cid in new_siblings if cid != node_id]
        if others and insertion_index != 0:
            return MoveResult.fail("Table nodes with siblings can only be placed first")

    children_map = {**data.children_map}
    if old_parent_id != new_parent_id:
        children_map[old_parent_id] = [cid for cid in data.children_map.get(old_parent_id, []) if cid != node_id]
    children_map[new_parent_id] = new_siblings

    logger.debug(f"Moving node {node_id} {position.value} {target_id}")
    return MoveResult.ok(
        data.model_copy(
            update={
                "parent_map": {**data.parent_map, node_id: new_parent_id},
                "children_map": children_map,
            }
        )
    )


def change_sibling_order_normalized(
    data: NormalizedData,
    dragged_id: str,
    target_id: str,
    insert_before: bool = True,
) -> NormalizedData:
    """Reorder two siblings that share a parent."""
    dragged_parent_id = data.parent_map.get(dragged_id)
    target_parent_id = data.parent_map.get(target_id)

    if not dragged_parent_id or not target_parent_id:
        logger.error(f"Sibling reorder without parent: {dragged_id}, {target_id}")
        raise ParentNotFoundError(
            "Parent not found for one of the nodes",
            {"dragged_id": dragged_id, "target_id": target_id},
        )
    if dragged_parent_id != target_parent_id:
        raise SiblingOrderError(
            "Nodes must have the same parent to change sibling order",
            {"dragged_parent_id": dragged_parent_id, "target_parent_id": target_parent_id},
        )

    siblings = data.children_map.get(dragged_parent_id, [])
    dragged_index = _index_of(siblings, dragged_id)
    target_index = _index_of(siblings, target_id)
    if dragged_index == -1 or target_index == -1:
        logger.error(f"Sibling list of {dragged_parent_id} is out of sync: {siblings}")
        raise InconsistentTreeError(
            "One of the nodes is not a child of the parent",
            {"siblings": list(siblings), "dragged_id": dragged_id, "target_id": target_id},
        )

    if dragged_index == target_index:
        return data

    new_siblings = [cid for cid in siblings if cid != dragged_id]
    adjusted = new_siblings.index(target_id)
    new_siblings.insert(adjusted if insert_before else adjusted + 1, dragged_id)

    logger.debug(f"Reordered {dragged_parent_id}: {new_siblings}")
    return data.model_copy(
        update={"children_map": {**data.children_map, dragged_parent_id: new_siblings}}
    )


# ========================================
# Helpers
# ========================================


def _ensure_new_id(data: NormalizedData, new_node: MindMapNode) -> None:
    if new_node.id in data.nodes or new_node.id == ROOT_KEY:
        raise DuplicateNodeIdError(f"Node already exists: {new_node.id}", {"node_id": new_node.id})


def _index_of(ids: Sequence[str], node_id: str) -> int:
    try:
        return ids.index(node_id)
    except ValueError:
        return -1


def _insert_next_to(ids: Sequence[str], anchor_id: str, new_id: str, insert_after: bool) -> List[str]:
    anchor_index = ids.index(anchor_id)
    result = list(ids)
    result.insert(anchor_index + 1 if insert_after else anchor_index, new_id)
    return result


def _collect_subtree(data: NormalizedData, node_id: str) -> Set[str]:
    collected: Set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in collected:
            continue
        collected.add(current)
        stack.extend(data.children_map.get(current, []))
    return collected


__all__ = [
    "CannotDeleteLastRootError",
    "DuplicateNodeIdError",
    "InconsistentTreeError",
    "InvalidParentKindError",
    "InvalidUpdateError",
    "MoveResult",
    "NodeNotFoundError",
    "ParentNotFoundError",
    "SiblingOrderError",
    "TreeStoreError",
    "add_normalized_node",
    "add_root_sibling_node",
    "add_sibling_normalized_node",
    "change_sibling_order_normalized",
    "delete_normalized_node",
    "denormalize_tree_data",
    "find_normalized_node",
    "move_node_with_position_normalized",
    "move_normalized_node",
    "normalize_tree_data",
    "update_normalized_node",
]
