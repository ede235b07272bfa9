import json
from pathlib import Path

import pytest

from mindmap_core import main as entry
from mindmap_core.src.models import LayoutOptions
from mindmap_core.src.services import DuplicateNodeIdError
from mindmap_core.src.services import config as config_module

FOREST = [
    {"id": "r", "text": "Root", "children": [{"id": "c1", "text": "One"}, {"id": "c2", "text": "Two"}]},
    {"id": "s", "text": "Second", "fontSize": 18},
]


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    for key in ("MINDMAP_CENTER_X", "MINDMAP_CENTER_Y", "MINDMAP_FONT_SIZE"):
        monkeypatch.delenv(key, raising=False)
    config_module.reload_config()
    yield
    config_module.get_config.cache_clear()


def test_run_layout_positions_every_root() -> None:
    result = entry.run_layout(FOREST, LayoutOptions(center_x=0, center_y=0))

    assert [root["id"] for root in result] == ["r", "s"]
    first, second = result
    assert first["x"] == 0
    assert [child["id"] for child in first["children"]] == ["c1", "c2"]
    assert all(child["x"] > 0 for child in first["children"])
    assert second["y"] > first["y"]
    assert second["fontSize"] == 18
    assert "markdownMeta" not in first


@pytest.mark.parametrize("payload", [{"rootNodes": FOREST}, FOREST[0]])
def test_run_layout_accepts_wrapped_and_single_payloads(payload) -> None:
    result = entry.run_layout(payload)

    assert result[0]["id"] == "r"


def test_run_layout_rejects_duplicate_ids() -> None:
    payload = {"id": "r", "children": [{"id": "x"}, {"id": "x"}]}

    with pytest.raises(DuplicateNodeIdError):
        entry.run_layout(payload)


def test_run_layout_rejects_non_tree_payload() -> None:
    with pytest.raises(ValueError):
        entry.run_layout(5)


def test_main_prints_positioned_forest(tmp_path: Path, capsys) -> None:
    source = tmp_path / "forest.json"
    source.write_text(json.dumps(FOREST), encoding="utf-8")

    exit_code = entry.main([str(source), "--center-x", "10", "--center-y", "20"])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert (output[0]["x"], output[0]["y"]) == (10, 20)


def test_main_reports_unreadable_input(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert entry.main([str(tmp_path / "missing.json")]) == 1
    assert entry.main([str(broken)]) == 1
