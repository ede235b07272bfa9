"""Read-only navigation helpers over normalized and nested mind map data."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from ..models.node import MindMapNode
from ..models.normalized import NormalizedData
from .tree_store import InconsistentTreeError, NodeNotFoundError


def is_root_node(data: NormalizedData, node_id: str) -> bool:
    return node_id in data.root_node_ids


def get_parent_id(data: NormalizedData, node_id: str) -> Optional[str]:
    """Parent id, or None for roots and unknown ids."""
    return data.parent_map.get(node_id)


def get_sibling_ids(data: NormalizedData, node_id: str) -> Tuple[List[str], int]:
    """
    Return (sibling ids including the node, index of the node).

    Roots are siblings of each other. Unknown ids yield ([], -1).
    """
    if node_id in data.root_node_ids:
        siblings = list(data.root_node_ids)
    else:
        parent_id = data.parent_map.get(node_id)
        if parent_id is None:
            return [], -1
        siblings = list(data.children_map.get(parent_id, []))
    return siblings, siblings.index(node_id) if node_id in siblings else -1


def get_node_path(data: NormalizedData, node_id: str) -> List[str]:
    """Ids from the node's root down to the node itself."""
    if node_id not in data.nodes:
        raise NodeNotFoundError(f"Node not found: {node_id}", {"node_id": node_id})

    path = [node_id]
    seen = {node_id}
    current = data.parent_map.get(node_id)
    while current is not None:
        if current in seen:
            raise InconsistentTreeError(f"Cycle detected above node: {node_id}", {"path": path})
        seen.add(current)
        path.append(current)
        current = data.parent_map.get(current)
    path.reverse()
    return path


def iter_nodes(root: MindMapNode) -> Iterable[MindMapNode]:
    """Pre-order traversal of a nested tree."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node_in_roots(roots: Optional[Iterable[MindMapNode]], node_id: str) -> Optional[MindMapNode]:
    """Locate a node by id in a nested forest."""
    for root in roots or []:
        for node in iter_nodes(root):
            if node.id == node_id:
                return node
    return None


__all__ = [
    "find_node_in_roots",
    "get_node_path",
    "get_parent_id",
    "get_sibling_ids",
    "is_root_node",
    "iter_nodes",
]
