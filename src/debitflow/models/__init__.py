"""SQLAlchemy models for DebitFlow."""

from .base import Base, PortableJSONB
from .catalog_reference import CatalogReference
from .debit_sheet import DebitItem, DebitSheet
from .extraction_log import ExtractionLog

__all__ = [
    "Base",
    "CatalogReference",
    "DebitItem",
    "DebitSheet",
    "ExtractionLog",
    "PortableJSONB",
]
