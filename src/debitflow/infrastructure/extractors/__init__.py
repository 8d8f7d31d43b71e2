"""Document layout extractors (pdfplumber, openpyxl)."""

from typing import Optional

from debitflow.domain.extraction.ports import LayoutExtractorPort

from .excel_layout_extractor import ExcelLayoutExtractor, read_workbook
from .pdf_layout_extractor import PDFLayoutExtractor

__all__ = ["ExcelLayoutExtractor", "PDFLayoutExtractor", "get_layout_extractor", "read_workbook"]

_EXTRACTORS = (PDFLayoutExtractor(), ExcelLayoutExtractor())


def get_layout_extractor(mime_type: str) -> Optional[LayoutExtractorPort]:
    """First extractor able to handle the MIME type, None if none can."""
    for extractor in _EXTRACTORS:
        if extractor.can_handle(mime_type):
            return extractor
    return None
