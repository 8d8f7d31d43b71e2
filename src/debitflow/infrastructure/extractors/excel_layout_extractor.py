"""Spreadsheet layout extractor - cells as positioned tokens via openpyxl.

Each non-empty cell becomes a token: x grows with the column, y decreases
with the row (so rows read top to bottom like a PDF page) and the page is
the worksheet index. Row spacing is wider than the row-grouping tolerance,
so cells of one spreadsheet row always group together.
"""

import io
import logging
from datetime import date, datetime
from typing import Any, List

import openpyxl

from debitflow.domain.extraction.excel_template import SheetGrid
from debitflow.domain.extraction.exceptions import DocumentUnreadable
from debitflow.domain.extraction.models import DocumentLayout, PositionedToken
from debitflow.domain.extraction.ports import LayoutExtractorPort

logger = logging.getLogger(__name__)

CELL_WIDTH = 50.0
ROW_HEIGHT = 10.0
SPREADSHEET_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroEnabled.12",
}


def read_workbook(content: bytes) -> List[SheetGrid]:
    """Load all worksheets as value grids.

    Raises:
        DocumentUnreadable: openpyxl cannot open the workbook
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning(f"Workbook could not be read: {e}")
        raise DocumentUnreadable(f"The spreadsheet could not be read: {e}") from e

    try:
        return [
            SheetGrid(name=sheet.title, rows=[list(row) for row in sheet.iter_rows(values_only=True)])
            for sheet in workbook.worksheets
        ]
    finally:
        workbook.close()


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return " ".join(str(value).split())


class ExcelLayoutExtractor(LayoutExtractorPort):
    """Flattens workbooks for the model text path and the layout parser."""

    version = "openpyxl_cells_v1"

    def can_handle(self, mime_type: str) -> bool:
        return mime_type in SPREADSHEET_MIME_TYPES

    def extract(self, content: bytes) -> DocumentLayout:
        sheets = read_workbook(content)
        return self.layout_from_sheets(sheets)

    def layout_from_sheets(self, sheets: List[SheetGrid]) -> DocumentLayout:
        pages = []
        lines = []
        for page_index, sheet in enumerate(sheets):
            tokens = []
            for row_index, row in enumerate(sheet.rows):
                cells = [(col, _cell_text(value)) for col, value in enumerate(row)]
                cells = [(col, text) for col, text in cells if text]
                if not cells:
                    continue
                lines.append(" ".join(text for _, text in cells))
                tokens.extend(
                    PositionedToken(
                        text=text,
                        x=col * CELL_WIDTH,
                        y=-row_index * ROW_HEIGHT,
                        width=CELL_WIDTH,
                        height=ROW_HEIGHT,
                        page=page_index,
                    )
                    for col, text in cells
                )
            pages.append(tuple(tokens))

        layout = DocumentLayout(
            plain_text="\n".join(lines),
            pages=tuple(pages),
            sheet_names=tuple(sheet.name for sheet in sheets),
        )
        logger.info(f"Workbook layout extracted: {len(sheets)} sheets, {layout.token_count} tokens")
        return layout
