"""Persistence and audit gateway for extracted debit sheets.

commit() is all-or-nothing: a duplicate reference aborts before any write,
and the header and item inserts share one transaction. The unique
constraint on reference_number is the real guard; the lookup only gives
the caller a clear error without touching the transaction.
"""

import logging
from typing import Optional, Sequence
from uuid import UUID

from debitflow.domain.extraction.date_parser import days_between
from debitflow.domain.extraction.derived_fields import most_frequent_material, thickness_summary
from debitflow.domain.extraction.exceptions import DuplicateOrderReference
from debitflow.domain.extraction.models import DebitOrderDraft, MatchedLineItem
from debitflow.domain.extraction.ports import OrderStorePort
from debitflow.domain.extraction.records import ExtractionLogEntry, OrderRecord

logger = logging.getLogger(__name__)


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


def build_order_record(
    draft: DebitOrderDraft,
    items: Sequence[MatchedLineItem],
    user_id: Optional[UUID] = None,
    source_document: str = "",
) -> OrderRecord:
    """Flatten a draft into the persisted header, derived fields included."""
    header = draft.header
    reference = _text(header.reference_number.value) or None
    order_date = header.order_date.value
    due_date = header.due_date.value

    return OrderRecord(
        order_number=_text(header.order_number.value),
        reference_number=reference,
        order_date=order_date,
        due_date=due_date,
        lead_time_days=days_between(order_date, due_date),
        client_name=_text(header.client_name.value),
        site_reference=_text(header.site_reference.value),
        salesperson_code=_text(header.salesperson_code.value),
        material_summary=most_frequent_material(items),
        thickness_summary=thickness_summary(items),
        total_area_m2=draft.computed_total_area,
        total_volume_m3=draft.computed_total_volume,
        declared_total_quantity=draft.declared_total_quantity,
        confidence=draft.overall_confidence,
        needs_review=bool(draft.warnings),
        source_document=source_document,
        user_id=user_id,
    )


class OrderGateway:
    """Writes committed debit sheets and the extraction audit trail."""

    def __init__(self, store: OrderStorePort):
        self.store = store

    def commit(
        self,
        draft: DebitOrderDraft,
        items: Sequence[MatchedLineItem],
        user_id: Optional[UUID] = None,
        source_document: str = "",
    ) -> UUID:
        """Persist the draft header and its matched items.

        Args:
            draft: Reconciled draft (warnings decide needs_review)
            items: Matched line items, in document order
            user_id: Submitting user
            source_document: Uploaded filename

        Returns:
            UUID of the new debit sheet

        Raises:
            DuplicateOrderReference: A sheet with the same ARC number exists
        """
        record = build_order_record(draft, items, user_id, source_document)

        if record.reference_number:
            existing = self.store.find_by_reference(record.reference_number)
            if existing is not None:
                logger.warning(
                    f"Duplicate reference {record.reference_number} (existing order {existing})",
                    extra={"reference_number": record.reference_number, "order_id": str(existing)},
                )
                raise DuplicateOrderReference(record.reference_number, str(existing))

        with self.store.transaction():
            order_id = self.store.insert_order(record)
            self.store.insert_line_items(order_id, items)

        logger.info(
            f"Committed debit sheet with {len(items)} items",
            extra={"order_id": str(order_id), "reference_number": record.reference_number},
        )
        return order_id

    def append_extraction_log(self, entry: ExtractionLogEntry) -> Optional[UUID]:
        """Append one audit entry; failures are logged and never raised.

        Returns:
            Id of the log row, None when the write failed
        """
        try:
            return self.store.insert_audit_log(entry)
        except Exception:
            logger.exception(
                "Failed to write extraction log entry",
                extra={"document_name": entry.document_name, "method": entry.method},
            )
            return None
