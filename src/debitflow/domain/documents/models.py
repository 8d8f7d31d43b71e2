"""Source document value object."""

from dataclasses import dataclass
from enum import Enum


class DocumentKind(str, Enum):
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"


@dataclass(frozen=True)
class SourceDocument:
    """Uploaded bytes for the duration of one extraction request.

    Attributes:
        content: Raw file bytes
        filename: Sanitised original filename
        mime_type: Declared (or extension-derived) MIME type
        kind: Resolved document kind
    """

    content: bytes
    filename: str
    mime_type: str
    kind: DocumentKind

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return self.kind == DocumentKind.PDF
