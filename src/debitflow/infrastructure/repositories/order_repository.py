"""Order repository - debit sheets, line items and the extraction audit log.

Order writes happen inside transaction(): the header and its items are
flushed on one session and committed together. The audit log is written on
its own short-lived session so it never shares the fate of the order
transaction.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from debitflow.domain.extraction.exceptions import DuplicateOrderReference
from debitflow.domain.extraction.models import MatchedLineItem
from debitflow.domain.extraction.ports import OrderStorePort
from debitflow.domain.extraction.records import ExtractionLogEntry, OrderRecord
from debitflow.models.debit_sheet import DebitItem, DebitSheet
from debitflow.models.extraction_log import ExtractionLog

logger = logging.getLogger(__name__)


def _as_uuid(value: Optional[str]) -> Optional[UUID]:
    return UUID(value) if value else None


class SqlAlchemyOrderStore(OrderStorePort):
    """OrderStorePort backed by SQLAlchemy sessions.

    One instance serves one extraction request; it is not shared between
    threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Args:
            session_factory: Callable returning a new Session (e.g. SessionLocal)
        """
        self._session_factory = session_factory
        self._session: Optional[Session] = None

    def _active_session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Order writes require an open transaction()")
        return self._session

    def find_by_reference(self, reference_number: str) -> Optional[UUID]:
        session = self._session or self._session_factory()
        try:
            return session.execute(
                select(DebitSheet.id).where(DebitSheet.reference_number == reference_number)
            ).scalar_one_or_none()
        finally:
            if session is not self._session:
                session.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._session is not None:
            raise RuntimeError("A transaction is already open on this store")

        session = self._session_factory()
        self._session = session
        try:
            yield
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            self._session = None
            session.close()

    def insert_order(self, record: OrderRecord) -> UUID:
        session = self._active_session()
        sheet = DebitSheet(
            user_id=record.user_id,
            order_number=record.order_number or None,
            reference_number=record.reference_number,
            order_date=record.order_date,
            due_date=record.due_date,
            lead_time_days=record.lead_time_days,
            client_name=record.client_name or None,
            site_reference=record.site_reference or None,
            salesperson_code=record.salesperson_code or None,
            material_summary=record.material_summary or None,
            thickness_summary=record.thickness_summary or None,
            total_area_m2=record.total_area_m2,
            total_volume_m3=record.total_volume_m3,
            declared_total_quantity=record.declared_total_quantity,
            confidence=record.confidence,
            needs_review=record.needs_review,
            source_document=record.source_document,
        )
        session.add(sheet)
        try:
            session.flush()
        except IntegrityError as e:
            if record.reference_number:
                logger.warning(
                    f"Unique constraint rejected reference {record.reference_number}",
                    extra={"reference_number": record.reference_number},
                )
                raise DuplicateOrderReference(record.reference_number) from e
            raise
        return sheet.id

    def insert_line_items(self, order_id: UUID, items: Sequence[MatchedLineItem]) -> None:
        session = self._active_session()
        session.add_all(
            DebitItem(
                sheet_id=order_id,
                line_no=item.line_no,
                description=item.description or None,
                material_name=item.material_name or None,
                finish=item.finish or None,
                length_cm=item.length_cm,
                width_cm=item.width_cm,
                thickness_cm=item.thickness_cm,
                piece_count=item.piece_count,
                declared_quantity=item.declared_quantity,
                area_m2=item.area_m2,
                volume_m3=item.volume_m3,
                edge=item.edge or None,
                appliance_number=item.appliance_number or None,
                catalog_reference_id=_as_uuid(item.catalog_id),
                matched=item.matched,
            )
            for item in items
        )
        session.flush()

    def insert_audit_log(self, entry: ExtractionLogEntry) -> UUID:
        session = self._session_factory()
        try:
            log = ExtractionLog(
                created_at=entry.timestamp,
                user_id=entry.user_id,
                document_name=entry.document_name,
                method=entry.method,
                status=entry.status,
                raw_model_sample=entry.raw_model_sample,
                parsed_draft=entry.parsed_draft,
                warnings=list(entry.warnings),
                steps=list(entry.steps),
                confidence=entry.confidence,
                duration_ms=entry.duration_ms,
                error_message=entry.error_message,
                order_id=entry.order_id,
                metadata_json=entry.metadata or None,
            )
            session.add(log)
            session.commit()
            return log.id
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
