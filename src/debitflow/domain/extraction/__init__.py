"""Debit sheet extraction domain: data model, parsers and reconciliation."""

from .context import ExtractionContext
from .exceptions import (
    DocumentUnreadable,
    DuplicateOrderReference,
    ExtractionError,
    ModelCallFailed,
    UnparsableReply,
    UnsupportedDocument,
)
from .models import (
    CatalogEntry,
    DebitOrderDraft,
    DocumentLayout,
    DraftHeader,
    ExtractionField,
    ExtractionMethod,
    ExtractionSource,
    ExtractionStatus,
    LineItem,
    MatchedLineItem,
    PositionedToken,
)

__all__ = [
    "CatalogEntry",
    "DebitOrderDraft",
    "DocumentLayout",
    "DocumentUnreadable",
    "DraftHeader",
    "DuplicateOrderReference",
    "ExtractionContext",
    "ExtractionError",
    "ExtractionField",
    "ExtractionMethod",
    "ExtractionSource",
    "ExtractionStatus",
    "LineItem",
    "MatchedLineItem",
    "ModelCallFailed",
    "PositionedToken",
    "UnparsableReply",
    "UnsupportedDocument",
]
