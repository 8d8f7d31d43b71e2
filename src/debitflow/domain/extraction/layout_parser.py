"""Coordinate-based table reconstruction for debit sheets.

Used when the model path is unavailable or yields no items. Tokens are
grouped into rows by vertical proximity, the item table is located by its
column-label row, and each data row is sliced with column_rules. The parser
is deterministic and never calls external services.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .column_rules import (
    find_finish_anchor,
    normalise_finish,
    normalise_label,
    read_numeric_columns,
    split_name_and_material,
)
from .material_classifier import DEFAULT_BLOCK_THICKNESS_CM, assign_quantities
from .models import ExtractionSource, LineItem, PositionedToken

logger = logging.getLogger(__name__)

DEFAULT_ROW_TOLERANCE = 3.0
TABLE_HEADER_KEYWORDS = ("item", "materiaux", "finition")
HEURISTIC_LINE_CONFIDENCE = 0.6

_TEXT_ITEM_LINE = re.compile(
    r"^(?P<before>.+?)\s+(?P<finish>Brut|Adoucie?|Polie?)\s+"
    r"(?P<length>\d+(?:[.,]\d+)?)\s+(?P<width>\d+(?:[.,]\d+)?)\s+"
    r"(?P<thickness>\d+(?:[.,]\d+)?)\s+(?P<count>\d+)\s+(?P<qty>\d+(?:[.,]\d+)?)",
    re.IGNORECASE,
)


@dataclass
class LayoutParseResult:
    """Items recovered from a layout plus notes on dropped rows."""

    items: List[LineItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    rows_scanned: int = 0
    rows_dropped: int = 0


def group_rows(tokens: Sequence[PositionedToken], tolerance: float = DEFAULT_ROW_TOLERANCE) -> List[List[PositionedToken]]:
    """Bucket tokens into rows by vertical proximity.

    A token joins the first existing row whose representative y (the y of
    the row's first token) is within tolerance; otherwise it starts a new
    row. Rows are returned top to bottom (descending y, origin bottom-left).
    Blank tokens are ignored.

    Args:
        tokens: Tokens of one page, in reading order
        tolerance: Maximum vertical distance to the row's representative y

    Returns:
        List of rows, each in the order tokens were assigned
    """
    rows: List[List[PositionedToken]] = []
    for token in tokens:
        if not token.text.strip():
            continue
        for row in rows:
            if abs(row[0].y - token.y) <= tolerance:
                row.append(token)
                break
        else:
            rows.append([token])

    rows.sort(key=lambda row: row[0].y, reverse=True)
    return rows


def row_texts(row: Sequence[PositionedToken]) -> List[str]:
    """Token texts sorted left to right."""
    return [token.text.strip() for token in sorted(row, key=lambda t: t.x)]


def is_table_header(texts: Sequence[str], keywords: Sequence[str] = TABLE_HEADER_KEYWORDS) -> bool:
    joined = normalise_label(" ".join(texts))
    return all(keyword in joined for keyword in keywords)


def build_item(
    line_no: int,
    texts: Sequence[str],
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> tuple[Optional[LineItem], Optional[str]]:
    """Build a line item from one row's token texts.

    Returns:
        (item, None) on success; (None, None) when the row is not an item
        row; (None, reason) when it is an item row that must be dropped
    """
    anchor = find_finish_anchor(texts)
    if anchor is None:
        return None, None

    values, failure = read_numeric_columns(texts, anchor)
    if failure:
        return None, failure

    name, material, rule_name = split_name_and_material(texts[:anchor])
    anomalies = []
    if not material:
        anomalies.append("No material designation before the finish")
    elif rule_name == "fixed_width":
        anomalies.append("Material boundary guessed from token position")

    item = LineItem(
        line_no=line_no,
        description=name,
        material_name=material,
        finish=normalise_finish(texts[anchor]),
        length_cm=values["length_cm"],
        width_cm=values["width_cm"],
        thickness_cm=values["thickness_cm"],
        piece_count=int(values["piece_count"]),
        declared_quantity=values["declared_quantity"],
        confidence=HEURISTIC_LINE_CONFIDENCE,
        source=ExtractionSource.HEURISTIC,
        anomalies=anomalies,
    )
    return assign_quantities(item, block_threshold_cm=block_threshold_cm), None


def parse_from_layout(
    pages: Sequence[Sequence[PositionedToken]],
    tolerance: float = DEFAULT_ROW_TOLERANCE,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> LayoutParseResult:
    """Reconstruct item rows from positioned tokens.

    On each page, rows above the column-label row are ignored and the
    label row itself is skipped. Rows without a finish keyword are not
    item rows; item rows whose numeric columns do not parse are dropped
    with a warning.

    Args:
        pages: Tokens per page
        tolerance: Row grouping tolerance
        block_threshold_cm: Passed to the material classifier

    Returns:
        LayoutParseResult with items numbered across pages
    """
    result = LayoutParseResult()

    for page_index, tokens in enumerate(pages):
        in_table = False
        for row in group_rows(tokens, tolerance):
            texts = row_texts(row)
            if not in_table:
                in_table = is_table_header(texts)
                continue

            result.rows_scanned += 1
            item, failure = build_item(len(result.items) + 1, texts, block_threshold_cm)
            if failure:
                result.rows_dropped += 1
                result.warnings.append(
                    f"Page {page_index + 1}: row '{' '.join(texts)[:80]}' dropped ({failure})"
                )
                continue
            if item is not None:
                result.items.append(item)
                result.warnings.extend(f"Line {item.line_no}: {note}" for note in item.anomalies)

    logger.info(
        f"Layout parser recovered {len(result.items)} items "
        f"({result.rows_dropped} rows dropped, {result.rows_scanned} scanned)"
    )
    return result


def parse_items_from_text(
    text: str,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> LayoutParseResult:
    """Line-oriented fallback for documents whose tokens carry no geometry.

    Matches "<name material> <finish> L W T pieces qty" anywhere on a line.
    """
    result = LayoutParseResult()
    for raw_line in text.splitlines():
        match = _TEXT_ITEM_LINE.search(raw_line.strip())
        if not match:
            continue
        result.rows_scanned += 1
        texts = match.group("before").split() + [
            match.group(name) for name in ("finish", "length", "width", "thickness", "count", "qty")
        ]
        item, failure = build_item(len(result.items) + 1, texts, block_threshold_cm)
        if item is None:
            result.rows_dropped += 1
            result.warnings.append(f"Text line '{raw_line.strip()[:80]}' dropped ({failure or 'too few columns'})")
            continue
        result.items.append(item)
        result.warnings.extend(f"Line {item.line_no}: {note}" for note in item.anomalies)

    logger.info(f"Text fallback recovered {len(result.items)} items")
    return result
