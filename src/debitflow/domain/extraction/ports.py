"""
Extraction ports (interfaces) following Hexagonal Architecture.

Layout extractors, the catalog and the order store are adapters; the
pipeline only sees these interfaces.
"""

from abc import ABC, abstractmethod
from typing import ContextManager, List, Optional, Sequence
from uuid import UUID

from .models import CatalogEntry, DocumentLayout, MatchedLineItem
from .records import ExtractionLogEntry, OrderRecord


class LayoutExtractorPort(ABC):
    """Turns document bytes into plain text and positioned tokens."""

    @abstractmethod
    def extract(self, content: bytes) -> DocumentLayout:
        """
        Extract text and tokens, pages in order.

        Raises:
            DocumentUnreadable: The bytes are not a readable document
        """

    @abstractmethod
    def can_handle(self, mime_type: str) -> bool:
        pass


class CatalogStorePort(ABC):
    """Read-only access to catalog references."""

    @abstractmethod
    def list_entries(self) -> List[CatalogEntry]:
        """Point-in-time snapshot of the whole catalog."""


class OrderStorePort(ABC):
    """Persistence of debit sheets and the extraction audit log."""

    @abstractmethod
    def find_by_reference(self, reference_number: str) -> Optional[UUID]:
        """Id of the order with this ARC reference, if any."""

    @abstractmethod
    def transaction(self) -> ContextManager[None]:
        """Scope in which order writes commit together or not at all."""

    @abstractmethod
    def insert_order(self, record: OrderRecord) -> UUID:
        """
        Insert the order header.

        Raises:
            DuplicateOrderReference: The reference violates the unique constraint
        """

    @abstractmethod
    def insert_line_items(self, order_id: UUID, items: Sequence[MatchedLineItem]) -> None:
        pass

    @abstractmethod
    def insert_audit_log(self, entry: ExtractionLogEntry) -> UUID:
        pass
