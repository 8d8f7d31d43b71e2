"""Reader for the in-house "FICHE DEBIT DBPM" spreadsheet template.

The template has fixed cells, so no model or layout heuristics are needed:

    C2 salesperson   G2 order number (OS)
    C3 client        G3 site
    Row 10 onwards:  A appliance no. | B pieces | C material | D finish |
                     E length | F width | G thickness | M m² | N m³

The ARC reference, order date and due date are not part of the template;
they are completed by the operator after import.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .column_rules import normalise_finish
from .confidence import calculate_confidence
from .material_classifier import DEFAULT_BLOCK_THICKNESS_CM, assign_quantities
from .models import (
    DebitOrderDraft,
    DraftHeader,
    ExtractionField,
    ExtractionMethod,
    ExtractionSource,
    LineItem,
)
from .number_parser import parse_number

logger = logging.getLogger(__name__)

TEMPLATE_SHEET_NAME = "FICHE DEBIT DBPM"
FIRST_ITEM_ROW = 10
LAST_ITEM_ROW = 100
TEMPLATE_FIELD_CONFIDENCE = 0.95
SUMMARY_ROW_PATTERN = re.compile(r"\b(total|somme)\b", re.IGNORECASE)


@dataclass(frozen=True)
class SheetGrid:
    """Cell values of one worksheet, rows and columns 0-based."""

    name: str
    rows: Sequence[Sequence[Any]]

    def value(self, reference: str) -> Any:
        """Cell value by A1 reference, None outside the used range."""
        match = re.fullmatch(r"([A-Z]+)(\d+)", reference.upper())
        if not match:
            raise ValueError(f"Invalid cell reference: {reference}")
        letters, digits = match.groups()
        column = 0
        for letter in letters:
            column = column * 26 + (ord(letter) - ord("A") + 1)
        row_index, column_index = int(digits) - 1, column - 1
        if row_index >= len(self.rows):
            return None
        row = self.rows[row_index]
        return row[column_index] if column_index < len(row) else None

    def text(self, reference: str) -> str:
        value = self.value(reference)
        if value is None:
            return ""
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return " ".join(str(value).split())


def find_template_sheet(sheets: Sequence[SheetGrid]) -> Optional[SheetGrid]:
    for sheet in sheets:
        if sheet.name.strip().upper() == TEMPLATE_SHEET_NAME:
            return sheet
    return None


def _template_field(value: str) -> ExtractionField:
    return ExtractionField(
        value=value,
        confidence=TEMPLATE_FIELD_CONFIDENCE if value else 0.0,
        source=ExtractionSource.HEURISTIC,
    )


def _row_is_blank(sheet: SheetGrid, row: int) -> bool:
    return all(not sheet.text(f"{col}{row}") for col in "ABCDEFGMN")


def parse_template_items(
    sheet: SheetGrid,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> tuple[List[LineItem], List[str]]:
    """Read item rows until the first completely blank row.

    Rows without descriptive data, without a positive dimension, or that
    look like summary rows (total/somme) are skipped with a warning.

    Returns:
        Tuple of (items, warnings)
    """
    items: List[LineItem] = []
    warnings: List[str] = []

    for row in range(FIRST_ITEM_ROW, LAST_ITEM_ROW + 1):
        if _row_is_blank(sheet, row):
            break

        appliance = sheet.text(f"A{row}")
        material = sheet.text(f"C{row}")
        finish = sheet.text(f"D{row}")
        row_text = " ".join(sheet.text(f"{col}{row}") for col in "ABCD")

        if SUMMARY_ROW_PATTERN.search(row_text):
            continue

        length = parse_number(sheet.value(f"E{row}")) or 0.0
        width = parse_number(sheet.value(f"F{row}")) or 0.0
        thickness = parse_number(sheet.value(f"G{row}")) or 0.0

        if not (appliance or material or finish):
            warnings.append(f"Row {row} skipped: no appliance, material or finish")
            continue
        if max(length, width, thickness) <= 0:
            warnings.append(f"Row {row} skipped: no positive dimension")
            continue

        pieces = parse_number(sheet.value(f"B{row}"))
        anomalies = []
        if not pieces or pieces <= 0:
            pieces = 1
            anomalies.append("Piece count missing, assumed 1")

        if material and finish:
            description = f"{material} - {finish}"
        else:
            description = material or finish or f"Appareil {appliance}"

        item = LineItem(
            line_no=len(items) + 1,
            description=description,
            material_name=material,
            finish=normalise_finish(finish) if finish else "",
            length_cm=length,
            width_cm=width,
            thickness_cm=thickness,
            piece_count=int(pieces),
            appliance_number=appliance,
            confidence=TEMPLATE_FIELD_CONFIDENCE,
            source=ExtractionSource.HEURISTIC,
            anomalies=anomalies,
        )
        item = assign_quantities(
            item,
            declared_area=parse_number(sheet.value(f"M{row}")),
            declared_volume=parse_number(sheet.value(f"N{row}")),
            block_threshold_cm=block_threshold_cm,
        )
        warnings.extend(f"Line {item.line_no}: {note}" for note in item.anomalies)
        items.append(item)

    return items, warnings


def parse_template(
    sheet: SheetGrid,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> DebitOrderDraft:
    """Build a draft from the DBPM template sheet.

    Args:
        sheet: The "FICHE DEBIT DBPM" worksheet
        block_threshold_cm: Passed to the material classifier

    Returns:
        DebitOrderDraft with method=excel_template and no declared total
    """
    header = DraftHeader(
        order_number=_template_field(sheet.text("G2")),
        client_name=_template_field(sheet.text("C3")),
        site_reference=_template_field(sheet.text("G3")),
        salesperson_code=_template_field(sheet.text("C2")),
    )
    items, warnings = parse_template_items(sheet, block_threshold_cm)
    logger.info(f"Spreadsheet template parsed: {len(items)} items")

    return DebitOrderDraft(
        header=header,
        items=items,
        declared_total_quantity=None,
        overall_confidence=calculate_confidence(header, items)[0],
        warnings=warnings,
        method=ExtractionMethod.EXCEL_TEMPLATE,
    )
