from typing import List

import pytest

from mindmap_core.src.models import LayoutOptions, MindMapNode, NodeKind, NodeSize, TextWrapConfig
from mindmap_core.src.services.config import LayoutConfig
from mindmap_core.src.services.layout_engine import (
    HierarchicalLayout,
    count_visible_nodes,
    get_subtree_bounds,
    layout_forest,
    resolve_center_x,
    simple_hierarchical_layout,
)

BOX = NodeSize(width=56, height=20)
# Root at x=180 with 56px boxes: toggle at 229, child left edge at 254.
CHILD_X = 282


def fixed_size(node: MindMapNode, font_size: float, wrap: TextWrapConfig) -> NodeSize:
    return BOX


def node(node_id: str, *children: MindMapNode, **attrs) -> MindMapNode:
    return MindMapNode(id=node_id, text=node_id, children=list(children), **attrs)


@pytest.fixture
def config() -> LayoutConfig:
    return LayoutConfig()


def layout(root: MindMapNode, config: LayoutConfig, options: LayoutOptions = None) -> MindMapNode:
    return simple_hierarchical_layout(root, options, config=config, size_estimator=fixed_size)


def test_single_root_sits_at_center(config: LayoutConfig) -> None:
    result = layout(node("root"), config)

    assert (result.x, result.y) == (180, 300)


def test_two_children_are_stacked_and_parent_centered(config: LayoutConfig) -> None:
    result = layout(node("root", node("c1"), node("c2")), config)

    first, second = result.children
    assert first.y == pytest.approx(288)
    assert second.y == pytest.approx(312)
    assert first.x == second.x == pytest.approx(CHILD_X)
    assert result.y == pytest.approx(300)


def test_nested_subtree_heights_drive_offsets(config: LayoutConfig) -> None:
    tree = node("root", node("a", node("a1"), node("a2"), node("a3")), node("b"))

    result = layout(tree, config)

    a, b = result.children
    assert [child.y for child in a.children] == pytest.approx([264, 288, 312])
    assert a.y == pytest.approx(288)
    assert b.y == pytest.approx(336)
    assert result.y == pytest.approx(300)
    assert a.children[0].x > a.x > result.x


def test_collapsed_subtree_takes_own_height_only(config: LayoutConfig) -> None:
    tree = node("root", node("a", node("a1"), node("a2"), node("a3"), collapsed=True), node("b"))

    result = layout(tree, config)

    a, b = result.children
    assert (a.y, b.y) == pytest.approx((288, 312))
    assert [child.y for child in a.children] == [0, 0, 0]


def test_layout_does_not_mutate_input(config: LayoutConfig) -> None:
    tree = node("root", node("c1"), node("c2"))
    snapshot = tree.model_dump()

    result = layout(tree, config)

    assert tree.model_dump() == snapshot
    assert result is not tree
    assert result.children[0] is not tree.children[0]


def test_layout_is_deterministic(config: LayoutConfig) -> None:
    tree = node("root", node("a", node("a1")), node("b", node("b1"), node("b2")))

    assert layout(tree, config).model_dump() == layout(tree, config).model_dump()


def test_sizes_are_memoized_per_pass(config: LayoutConfig) -> None:
    calls: List[str] = []

    def recording(node: MindMapNode, font_size: float, wrap: TextWrapConfig) -> NodeSize:
        calls.append(node.id)
        return BOX

    engine = HierarchicalLayout(config=config, size_estimator=recording)
    tree = node("root", node("c1"), node("c2"))

    engine.layout(tree)
    assert sorted(calls) == ["c1", "c2", "root"]

    engine.layout(tree)
    assert len(calls) == 6


def test_estimator_receives_resolved_font_and_wrap(config: LayoutConfig) -> None:
    seen = set()

    def recording(node: MindMapNode, font_size: float, wrap: TextWrapConfig) -> NodeSize:
        seen.add((font_size, wrap))
        return BOX

    simple_hierarchical_layout(
        node("root", node("c")), LayoutOptions(font_size=20), config=config, size_estimator=recording
    )

    assert seen == {(20, TextWrapConfig(enabled=True, max_width=312))}


def test_larger_spacing_moves_children_right(config: LayoutConfig) -> None:
    tree = node("root", node("c1"))

    near = layout(tree, config)
    far = layout(tree, config, LayoutOptions(level_spacing=100))

    assert far.children[0].x > near.children[0].x


def test_wider_sibling_spacing(config: LayoutConfig) -> None:
    result = layout(node("root", node("c1"), node("c2")), config, LayoutOptions(node_spacing=40))

    first, second = result.children
    assert second.y - first.y == pytest.approx(40)


class TestCenter:
    def test_open_side_panel_shifts_center(self, config: LayoutConfig) -> None:
        assert resolve_center_x(LayoutOptions(active_view="outline"), config) == 292
        assert resolve_center_x(LayoutOptions(active_view="outline", sidebar_collapsed=True), config) == 180
        assert resolve_center_x(LayoutOptions(), config) == 180

    def test_explicit_center_wins(self, config: LayoutConfig) -> None:
        options = LayoutOptions(center_x=10, center_y=20, active_view="outline")

        result = layout(node("root"), config, options)

        assert (result.x, result.y) == (10, 20)


class TestForest:
    def test_roots_are_stacked_with_adaptive_spacing(self, config: LayoutConfig) -> None:
        roots = [node("r1"), node("r2"), node("r3", node("c1"), node("c2"))]

        first, second, third = layout_forest(roots, config=config, size_estimator=fixed_size)

        assert first.y == pytest.approx(300)
        assert second.y == pytest.approx(328.5)
        assert third.y == pytest.approx(370)
        assert [child.y for child in third.children] == pytest.approx([358, 382])

    def test_empty_forest(self, config: LayoutConfig) -> None:
        assert layout_forest([], config=config, size_estimator=fixed_size) == []

    def test_table_root_keeps_extra_margin_from_next_tree(self, config: LayoutConfig) -> None:
        roots = [node("t1", kind=NodeKind.TABLE), node("r2")]

        table, following = layout_forest(roots, config=config, size_estimator=fixed_size)

        assert table.y == pytest.approx(300)
        # 300 + 10 + 8 table margin + 8.5 spacing + 10
        assert following.y == pytest.approx(336.5)

    def test_table_in_second_tree_pushes_it_down(self, config: LayoutConfig) -> None:
        roots = [node("r1"), node("t2", kind=NodeKind.TABLE)]

        _, table = layout_forest(roots, config=config, size_estimator=fixed_size)

        assert table.y == pytest.approx(336.5)


def test_subtree_bounds_and_visible_count(config: LayoutConfig) -> None:
    tree = node("root", node("a", node("a1"), node("a2"), node("a3")), node("b"))
    positioned = layout(tree, config)

    bounds = get_subtree_bounds(positioned, config=config, size_estimator=fixed_size)

    assert (bounds.min_y, bounds.max_y) == pytest.approx((254, 346))
    assert count_visible_nodes(tree) == 6
    assert count_visible_nodes(tree.children[0].model_copy(update={"collapsed": True})) == 1


def test_bounds_pad_table_nodes(config: LayoutConfig) -> None:
    tree = node("root", node("grid", kind=NodeKind.TABLE), node("b"))
    positioned = layout(tree, config)

    bounds = get_subtree_bounds(positioned, config=config, size_estimator=fixed_size)

    grid, b = positioned.children
    assert bounds.min_y == pytest.approx(grid.y - 10 - 8)
    assert bounds.max_y == pytest.approx(b.y + 10)


def test_deep_chain_is_laid_out(config: LayoutConfig) -> None:
    deepest = node("n199")
    tree = deepest
    for depth in range(198, -1, -1):
        tree = node(f"n{depth}", tree)

    result = layout(tree, config)

    current = result
    while current.children:
        current = current.children[0]
    assert current.id == "n199"
    assert current.x > result.x
    assert current.y == pytest.approx(result.y)
    assert tree.x == 0 and deepest.x == 0


def test_default_estimator_lays_out_real_text(config: LayoutConfig) -> None:
    tree = node("root", node("A fairly long label that will wrap onto a second line"), node("short"))

    result = simple_hierarchical_layout(tree, config=config)

    long_child, short_child = result.children
    assert long_child.y < short_child.y
    assert long_child.x > result.x
    assert result.y == pytest.approx((long_child.y + short_child.y) / 2, abs=20)
