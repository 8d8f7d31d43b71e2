"""Column-boundary rules for debit sheet item rows.

An item row reads left to right as:

    <item name ...> <material ...> <finish> <L> <W> <T> <pieces> <qty> [...]

The finish keyword is the anchor. Numeric columns sit at fixed offsets after
it; the split between item name and material before it is found by the
first BOUNDARY_RULES entry that locates one. Each rule is a plain function
so it can be tested on its own.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .number_parser import parse_number

FINISH_VOCABULARY = {
    "brut": "Brut",
    "adouci": "Adoucie",
    "adoucie": "Adoucie",
    "poli": "Polie",
    "polie": "Polie",
}

MATERIAL_FAMILY_PATTERN = re.compile(
    r"ST\s*MAX|FACONNAGE|FAÇONNAGE|CHENE|CHÊNE|HETRE|HÊTRE|FRENE|FRÊNE|PIERRE|MARBRE|GRANIT",
    re.IGNORECASE,
)
STOCK_CODE_PATTERN = re.compile(r"^(?:[A-Z]\d+|Q)$", re.IGNORECASE)

# Name tokens kept before the material when no keyword or code is found
FIXED_MATERIAL_WIDTH = 3


def normalise_label(text: str) -> str:
    """Lowercase without accents ("Matériaux" -> "materiaux")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def find_finish_anchor(texts: Sequence[str]) -> Optional[int]:
    """Index of the first finish keyword, ignoring position 0.

    Position 0 is always part of the item name.
    """
    for index, text in enumerate(texts):
        if index == 0:
            continue
        if normalise_label(text.strip()) in FINISH_VOCABULARY:
            return index
    return None


def normalise_finish(text: str) -> str:
    return FINISH_VOCABULARY.get(normalise_label(text.strip()), text.strip())


@dataclass(frozen=True)
class NumericColumn:
    field: str
    offset: int
    parse: Callable[[str], Optional[float]]


def _strict_float(text: str) -> Optional[float]:
    return parse_number(text, strict=True)


NUMERIC_COLUMNS: Tuple[NumericColumn, ...] = (
    NumericColumn("length_cm", 1, _strict_float),
    NumericColumn("width_cm", 2, _strict_float),
    NumericColumn("thickness_cm", 3, _strict_float),
    NumericColumn("piece_count", 4, _strict_float),
    NumericColumn("declared_quantity", 5, _strict_float),
)


def _material_family_boundary(texts: Sequence[str]) -> Optional[int]:
    for index, text in enumerate(texts):
        # Word-level extractors split "ST MAX" into two tokens
        window = " ".join(texts[index:index + 2])
        if MATERIAL_FAMILY_PATTERN.search(text) or MATERIAL_FAMILY_PATTERN.match(window):
            return index
    return None


def _stock_code_boundary(texts: Sequence[str]) -> Optional[int]:
    for index, text in enumerate(texts):
        if index > 0 and STOCK_CODE_PATTERN.match(text.strip()):
            return index
    return None


def _fixed_width_boundary(texts: Sequence[str]) -> Optional[int]:
    return max(len(texts) - FIXED_MATERIAL_WIDTH, 0)


@dataclass(frozen=True)
class BoundaryRule:
    name: str
    locate: Callable[[Sequence[str]], Optional[int]]


BOUNDARY_RULES: Tuple[BoundaryRule, ...] = (
    BoundaryRule("material_family_keyword", _material_family_boundary),
    BoundaryRule("stock_code", _stock_code_boundary),
    BoundaryRule("fixed_width", _fixed_width_boundary),
)


def split_name_and_material(texts: Sequence[str]) -> Tuple[str, str, str]:
    """Split the tokens before the finish anchor.

    Args:
        texts: Token texts left of the finish keyword

    Returns:
        Tuple of (item name, material, name of the rule that decided)
    """
    if not texts:
        return "", "", "empty"

    for rule in BOUNDARY_RULES:
        boundary = rule.locate(texts)
        if boundary is None:
            continue
        # The item name is never empty: the first token always belongs to it
        if boundary == 0 and len(texts) > 1:
            boundary = 1
        name = " ".join(texts[:boundary]).strip()
        material = " ".join(texts[boundary:]).strip()
        if not name:
            name, material = texts[0], " ".join(texts[1:]).strip()
        return name, material, rule.name

    return texts[0], " ".join(texts[1:]).strip(), "first_token"


def read_numeric_columns(texts: Sequence[str], anchor: int) -> Tuple[dict, Optional[str]]:
    """Read the positional numeric columns after the finish anchor.

    Returns:
        Tuple of (field values, failure reason). When a reason is returned
        the row must be dropped.
    """
    values = {}
    for column in NUMERIC_COLUMNS:
        position = anchor + column.offset
        if position >= len(texts):
            return {}, f"missing {column.field}"
        value = column.parse(texts[position])
        if value is None:
            return {}, f"{column.field} '{texts[position]}' is not a number"
        values[column.field] = value
    return values, None
