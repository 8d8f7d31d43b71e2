"""PDF layout extractor - text and positioned words via pdfplumber.

pdfplumber measures from the top of the page; tokens are converted to a
bottom-left origin so that a larger y means higher on the page.
"""

import io
import logging
from typing import List

import pdfplumber

from debitflow.domain.extraction.exceptions import DocumentUnreadable
from debitflow.domain.extraction.models import DocumentLayout, PositionedToken
from debitflow.domain.extraction.ports import LayoutExtractorPort

logger = logging.getLogger(__name__)


class PDFLayoutExtractor(LayoutExtractorPort):
    """Reads every page of a text-based PDF.

    Scanned PDFs yield no tokens; they still reach the model path, which
    receives the document itself.
    """

    version = "pdfplumber_words_v1"

    def can_handle(self, mime_type: str) -> bool:
        return mime_type == "application/pdf"

    def extract(self, content: bytes) -> DocumentLayout:
        """Extract plain text and word tokens page by page.

        Raises:
            DocumentUnreadable: pdfplumber cannot open or parse the file
        """
        pages: List[tuple] = []
        texts: List[str] = []

        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                for page_index, page in enumerate(pdf.pages):
                    height = float(page.height)
                    words = page.extract_words()
                    pages.append(tuple(
                        PositionedToken(
                            text=word["text"],
                            x=float(word["x0"]),
                            y=round(height - float(word["bottom"]), 2),
                            width=float(word["x1"]) - float(word["x0"]),
                            height=float(word["bottom"]) - float(word["top"]),
                            page=page_index,
                        )
                        for word in words
                    ))
                    texts.append(page.extract_text() or "")
        except Exception as e:
            logger.warning(f"PDF could not be read: {e}")
            raise DocumentUnreadable(f"The PDF could not be read: {e}") from e

        layout = DocumentLayout(plain_text="\n".join(texts), pages=tuple(pages))
        logger.info(f"PDF layout extracted: {len(pages)} pages, {layout.token_count} tokens")
        return layout
