"""Structural and semantic validation for normalized mind map data."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from ..models.node import LIST_TYPES, MAX_HEADING_LEVEL, MarkdownType, MindMapNode
from ..models.normalized import ROOT_KEY, MovePosition, NormalizedData

logger = logging.getLogger(__name__)

LIST_BEFORE_HEADING_REASON = (
    "A list node can only be placed before every heading sibling"
)

ValidationResult = Tuple[bool, str]


def is_descendant(data: NormalizedData, ancestor_id: str, candidate_id: str) -> bool:
    """Return True if ``candidate_id`` sits anywhere below ``ancestor_id``."""
    children = data.children_map.get(ancestor_id, [])
    if candidate_id in children:
        return True
    return any(is_descendant(data, child_id, candidate_id) for child_id in children)


def _type_of(node: Optional[MindMapNode]) -> Optional[MarkdownType]:
    return node.markdown_type if node is not None else None


def _heading_ids(data: NormalizedData, ids: Iterable[str]) -> List[str]:
    return [
        node_id for node_id in ids if _type_of(data.nodes.get(node_id)) is MarkdownType.HEADING
    ]


def validate_node_movement(
    data: NormalizedData, node_id: str, new_parent_id: str
) -> ValidationResult:
    """
    Check markdown-type rules for making ``node_id`` a child of ``new_parent_id``.

    Returns (is_valid, reason). Reason is empty when valid.
    """
    node = data.nodes.get(node_id)
    new_parent = data.nodes.get(new_parent_id)
    if node is None or new_parent is None:
        return False, "Node not found"

    node_type = node.markdown_type
    parent_type = new_parent.markdown_type

    if node_type is MarkdownType.HEADING and parent_type in LIST_TYPES:
        return False, "A list node cannot own heading nodes"

    if node_type is MarkdownType.HEADING and parent_type is MarkdownType.HEADING:
        parent_level = new_parent.markdown_meta.level or 1
        if parent_level + 1 > MAX_HEADING_LEVEL:
            return False, f"Headings can be nested at most {MAX_HEADING_LEVEL} levels deep"

    return True, ""


def validate_node_movement_with_position(
    data: NormalizedData,
    node_id: str,
    target_id: str,
    position: MovePosition,
) -> ValidationResult:
    """Position-aware variant of :func:`validate_node_movement`."""
    node = data.nodes.get(node_id)
    target = data.nodes.get(target_id)
    if node is None or target is None:
        return False, "Node not found"

    if position is MovePosition.CHILD:
        is_valid, reason = validate_node_movement(data, node_id, target_id)
        if not is_valid:
            return is_valid, reason

        if node.markdown_type in LIST_TYPES and target.markdown_type is MarkdownType.HEADING:
            # Appending always lands after any existing heading child.
            if _heading_ids(data, data.children_map.get(target_id, [])):
                return False, LIST_BEFORE_HEADING_REASON
        return True, ""

    parent_id = data.parent_map.get(target_id)
    if not parent_id:
        return False, "Target node has no parent"

    is_valid, reason = validate_node_movement(data, node_id, parent_id)
    if not is_valid:
        return is_valid, reason

    parent = data.nodes.get(parent_id)
    if node.markdown_type in LIST_TYPES and _type_of(parent) is MarkdownType.HEADING:
        siblings = data.children_map.get(parent_id, [])
        headings = _heading_ids(data, siblings)
        if headings:
            if position is MovePosition.BEFORE and target_id != headings[0]:
                return False, LIST_BEFORE_HEADING_REASON
            if position is MovePosition.AFTER:
                target_index = siblings.index(target_id) if target_id in siblings else -1
                if _heading_ids(data, siblings[target_index + 1:]):
                    return False, LIST_BEFORE_HEADING_REASON

    return True, ""


def check_integrity(data: NormalizedData) -> List[str]:
    """
    Report every invariant violation in ``data``.

    Returns an empty list for a consistent structure.
    """
    problems: List[str] = []
    nodes = data.nodes

    if len(set(data.root_node_ids)) != len(data.root_node_ids):
        problems.append("root_node_ids contains duplicates")
    if nodes and not data.root_node_ids:
        problems.append("Nodes exist but there is no root")
    if data.children_map.get(ROOT_KEY, []) != data.root_node_ids:
        problems.append(f"children_map['{ROOT_KEY}'] does not mirror root_node_ids")

    for node_id, node in nodes.items():
        if node.id != node_id:
            problems.append(f"Node stored under '{node_id}' has id '{node.id}'")

    for root_id in data.root_node_ids:
        if root_id not in nodes:
            problems.append(f"Root '{root_id}' is not a known node")
        if root_id in data.parent_map:
            problems.append(f"Root '{root_id}' has a parent entry")

    for child_id, parent_id in data.parent_map.items():
        if child_id not in nodes:
            problems.append(f"parent_map references unknown node '{child_id}'")
        siblings = data.children_map.get(parent_id, [])
        if siblings.count(child_id) != 1:
            problems.append(f"'{child_id}' is not listed exactly once under parent '{parent_id}'")

    for parent_id, child_ids in data.children_map.items():
        if parent_id == ROOT_KEY:
            continue
        if parent_id not in nodes:
            problems.append(f"children_map references unknown parent '{parent_id}'")
        for child_id in child_ids:
            if child_id not in nodes:
                problems.append(f"children_map['{parent_id}'] references unknown node '{child_id}'")
            elif data.parent_map.get(child_id) != parent_id:
                problems.append(f"'{child_id}' listed under '{parent_id}' without a matching parent entry")

    for node_id in nodes:
        if node_id in data.root_node_ids:
            continue
        if node_id not in data.parent_map:
            problems.append(f"Node '{node_id}' is neither a root nor parented")
            continue
        seen = {node_id}
        current = data.parent_map.get(node_id)
        while current is not None and current not in data.root_node_ids:
            if current in seen:
                problems.append(f"Cycle detected through '{node_id}'")
                break
            seen.add(current)
            current = data.parent_map.get(current)

    if problems:
        logger.debug(f"Integrity check found {len(problems)} problem(s)")
    return problems


__all__ = [
    "check_integrity",
    "is_descendant",
    "validate_node_movement",
    "validate_node_movement_with_position",
]
