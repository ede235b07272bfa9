"""Entry point: lay out a mind map forest read as JSON.

Usage:
    python -m mindmap_core.main forest.json
    cat forest.json | python -m mindmap_core.main --font-size 16
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from mindmap_core.src.models import LayoutOptions, MindMapNode
from mindmap_core.src.services import (
    InconsistentTreeError,
    TreeStoreError,
    check_integrity,
    denormalize_tree_data,
    layout_forest,
    normalize_tree_data,
)

load_dotenv()

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute mind map node positions")
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="JSON file holding a node, a list of root nodes, or {\"rootNodes\": [...]} (default: stdin)",
    )
    parser.add_argument("--center-x", type=float, default=None, help="Root center x")
    parser.add_argument("--center-y", type=float, default=None, help="Root center y")
    parser.add_argument("--font-size", type=float, default=None, help="Global font size in px")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        help="Python logging level (or set LOG_LEVEL)",
    )
    return parser


def parse_forest(payload: Any) -> List[MindMapNode]:
    """Accept a single root, a list of roots, or an object with ``rootNodes``."""
    if isinstance(payload, dict) and "rootNodes" in payload:
        payload = payload["rootNodes"]
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise ValueError("Expected a node object or a list of root nodes")
    return [MindMapNode.model_validate(item) for item in payload]


def run_layout(payload: Any, options: Optional[LayoutOptions] = None) -> List[Dict[str, Any]]:
    """Normalize, verify, rebuild and position a forest; returns camelCased dicts."""
    roots = parse_forest(payload)
    data = normalize_tree_data(roots)

    problems = check_integrity(data)
    if problems:
        raise InconsistentTreeError("Input forest is inconsistent", {"problems": problems})

    positioned = layout_forest(denormalize_tree_data(data), options)
    logger.info(f"Laid out {len(data.nodes)} node(s) in {len(positioned)} tree(s)")
    return [node.model_dump(mode="json", by_alias=True, exclude_none=True) for node in positioned]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    options = LayoutOptions(center_x=args.center_x, center_y=args.center_y, font_size=args.font_size)

    try:
        if args.input == "-":
            payload = json.load(sys.stdin)
        else:
            with open(args.input, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        result = run_layout(payload, options)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error(f"Could not read input: {exc}")
        return 1
    except (ValidationError, ValueError) as exc:
        logger.error(f"Invalid mind map payload: {exc}")
        return 1
    except TreeStoreError as exc:
        logger.error(f"{exc.message}: {exc.details}")
        return 1

    json.dump(result, sys.stdout, indent=2)
    print()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
