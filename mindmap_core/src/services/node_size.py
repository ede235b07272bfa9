"""Canvas-free node content size estimation.

The layout engine treats size estimation as a pure function of a node, the
active font size and the wrap policy. ``estimate_node_size`` is the default
implementation; callers with real font metrics can pass their own callable.
"""

from __future__ import annotations

import math
import re
from typing import Callable, List, Optional, Sequence, Tuple

from ..models.layout import NodeSize, TextWrapConfig
from ..models.node import MindMapNode
from .config import DEFAULT_FONT_SIZE

NodeSizeEstimator = Callable[[MindMapNode, float, TextWrapConfig], NodeSize]

CHAR_WIDTH_RATIO = 0.6
LINE_HEIGHT_RATIO = 1.35
MIN_WRAP_WIDTH = 20.0
LINK_ICON_WIDTH = 22.0
TEXT_ICON_SPACING = 1.0
CHECKBOX_WIDTH = 16.0 + 8.0
DEFAULT_IMAGE_SIZE = (150.0, 105.0)

MARKDOWN_LINK_PATTERN = re.compile(r"^\[([^\]]*)\]\(([^)]+)\)$")
NOTE_IMAGE_PATTERN = re.compile(
    r"!\[[^\]]*\]\(([^)]+)\)|<img[^>]*\ssrc=[\"'][^\"'\s>]+[\"'][^>]*>", re.IGNORECASE
)
NOTE_LINK_PATTERN = re.compile(r"(?<!!)\[[^\]]*\]\(([^)]+)\)|\[\[[^\]]+\]\]")
MERMAID_PATTERN = re.compile(r"```mermaid[\s\S]*?```", re.IGNORECASE)
IMG_TAG_PATTERN = re.compile(r"<img[^>]*>", re.IGNORECASE)
IMG_WIDTH_PATTERN = re.compile(r"\swidth=[\"']?(\d+)(?:px)?[\"']?", re.IGNORECASE)
IMG_HEIGHT_PATTERN = re.compile(r"\sheight=[\"']?(\d+)(?:px)?[\"']?", re.IGNORECASE)
TABLE_SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")
TOKEN_PATTERN = re.compile(r"\s+|\S+")

_INLINE_MARKDOWN = (
    (re.compile(r"(\*\*|__)(.+?)\1"), r"\2"),
    (re.compile(r"~~(.+?)~~"), r"\1"),
    (re.compile(r"`([^`]*)`"), r"\1"),
    (re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])"), r"\1"),
)


# ========================================
# Text Measurement
# ========================================


def measure_text_width(text: str, font_size: float = DEFAULT_FONT_SIZE) -> float:
    """Approximate rendered width: non-ASCII characters count double."""
    if not text:
        return 0.0
    units = sum(2 if ord(char) > 0x7F else 1 for char in text)
    return units * font_size * CHAR_WIDTH_RATIO


def get_line_height(font_size: float) -> float:
    return max(font_size * LINE_HEIGHT_RATIO, font_size + 6)


def strip_inline_markdown(text: str) -> str:
    """Drop emphasis, strike-through and code markers, keeping their content."""
    for pattern, replacement in _INLINE_MARKDOWN:
        text = pattern.sub(replacement, text)
    return text


def wrap_text(text: str, font_size: float, max_width: Optional[float]) -> List[str]:
    """
    Greedy word wrap. Tokens wider than the line are split by character.

    ``max_width=None`` disables wrapping; explicit newlines always break.
    """
    limit = math.inf if max_width is None else max(MIN_WRAP_WIDTH, max_width)
    lines: List[str] = []

    for paragraph in (text or "").replace("\r\n", "\n").split("\n"):
        current = ""
        for token in TOKEN_PATTERN.findall(paragraph):
            if token.isspace():
                if current:
                    current += token
                continue
            candidate = current + token
            if measure_text_width(candidate, font_size) <= limit:
                current = candidate
                continue
            if current:
                lines.append(current.rstrip())
            pieces = _split_long_token(token, font_size, limit)
            lines.extend(pieces[:-1])
            current = pieces[-1]
        lines.append(current.rstrip())

    return lines


def _split_long_token(token: str, font_size: float, limit: float) -> List[str]:
    pieces: List[str] = []
    buffer = ""
    for char in token:
        if buffer and measure_text_width(buffer + char, font_size) > limit:
            pieces.append(buffer)
            buffer = char
        else:
            buffer += char
    pieces.append(buffer)
    return pieces


def get_node_horizontal_padding(text_length: int) -> float:
    """Padding grows with text length up to 25 characters."""
    return 12 + min(text_length / 25, 1) * 13


# ========================================
# Tables
# ========================================


def _table_cells(line: str) -> List[str]:
    return [cell.strip() for cell in line.strip().strip("|").split("|")]


def parse_markdown_table(source: Optional[str]) -> Optional[Tuple[List[str], List[List[str]]]]:
    """Find the first pipe table in ``source``; returns (headers, rows)."""
    if not source:
        return None
    lines = [line for line in source.replace("\r\n", "\n").split("\n") if line.strip()]
    for index in range(len(lines) - 1):
        header, separator = lines[index], lines[index + 1]
        separator_cells = _table_cells(separator)
        if "|" in header and separator_cells and all(
            TABLE_SEPARATOR_CELL.match(cell) for cell in separator_cells
        ):
            rows: List[List[str]] = []
            for line in lines[index + 2:]:
                if "|" not in line:
                    break
                rows.append(_table_cells(line))
            return _table_cells(header), rows
    return None


def calculate_table_dimensions(
    headers: Optional[Sequence[str]], rows: Sequence[Sequence[str]], font_size: float
) -> Tuple[float, float]:
    all_rows = ([list(headers)] if headers else []) + [list(row) for row in rows]
    if not all_rows:
        return 200.0, 70.0

    cell_font = font_size * 0.95
    cell_padding = 32
    column_count = max(len(row) for row in all_rows)
    column_widths = [
        max(measure_text_width(row[col] if col < len(row) else "", cell_font) for row in all_rows)
        + cell_padding
        for col in range(column_count)
    ]
    width = sum(column_widths) + (column_count - 1)
    row_height = math.ceil(cell_font * 1.3) + 24
    height = max(70.0, len(all_rows) * row_height)
    return max(150.0, width), height


def _table_node_size(node: MindMapNode, font_size: float) -> NodeSize:
    if node.custom_image_width and node.custom_image_height:
        return NodeSize(
            width=node.custom_image_width + 10,
            height=node.custom_image_height + 10,
            image_height=node.custom_image_height,
        )

    parsed = parse_markdown_table(node.text) or parse_markdown_table(node.note)
    if parsed is None and node.table_data is not None:
        parsed = (node.table_data.headers or [], node.table_data.rows)

    if parsed is None:
        width, height = 200.0, 70.0
    else:
        width, height = calculate_table_dimensions(parsed[0], parsed[1], font_size)
    return NodeSize(width=width + 4, height=height + 4, image_height=height)


# ========================================
# Images
# ========================================


def _note_image_size(node: MindMapNode) -> Optional[Tuple[float, float]]:
    note = node.note or ""
    if not (NOTE_IMAGE_PATTERN.search(note) or MERMAID_PATTERN.search(note)):
        return None
    if node.custom_image_width and node.custom_image_height:
        return node.custom_image_width, node.custom_image_height

    tag = IMG_TAG_PATTERN.search(note)
    if tag:
        width = IMG_WIDTH_PATTERN.search(tag.group(0))
        height = IMG_HEIGHT_PATTERN.search(tag.group(0))
        if width and height and int(width.group(1)) > 0 and int(height.group(1)) > 0:
            return float(width.group(1)), float(height.group(1))
    return DEFAULT_IMAGE_SIZE


# ========================================
# Main Estimator
# ========================================


def estimate_node_size(
    node: MindMapNode,
    font_size: Optional[float] = None,
    wrap: Optional[TextWrapConfig] = None,
) -> NodeSize:
    """Estimate a node's content box from its text, note, and kind."""
    size = font_size or node.font_size or DEFAULT_FONT_SIZE
    if node.is_table:
        return _table_node_size(node, size)

    wrap = wrap or TextWrapConfig()
    image = _note_image_size(node)
    image_width, image_height = image if image else (0.0, 0.0)

    link = MARKDOWN_LINK_PATTERN.match(node.text)
    display_text = link.group(1) if link else node.text
    measured_text = strip_inline_markdown(display_text)

    lines = wrap_text(measured_text, size, wrap.max_width if wrap.enabled else None)
    text_width = max(measure_text_width(line, size) for line in lines)
    if wrap.enabled:
        text_height = max(len(lines) * get_line_height(size), size + 8)
    else:
        text_height = max(size + 8, 22)

    checkbox = CHECKBOX_WIDTH if node.markdown_meta and node.markdown_meta.is_checkbox else 0.0
    width = max(
        text_width + get_node_horizontal_padding(len(display_text)) + checkbox,
        max(size * 2, 24),
    )
    if NOTE_LINK_PATTERN.search(node.note or ""):
        width += LINK_ICON_WIDTH + TEXT_ICON_SPACING
    if image:
        width = max(width, image_width + 10)

    return NodeSize(width=width, height=text_height + image_height, image_height=image_height)


__all__ = [
    "NodeSizeEstimator",
    "calculate_table_dimensions",
    "estimate_node_size",
    "get_line_height",
    "get_node_horizontal_padding",
    "measure_text_width",
    "parse_markdown_table",
    "strip_inline_markdown",
    "wrap_text",
]
