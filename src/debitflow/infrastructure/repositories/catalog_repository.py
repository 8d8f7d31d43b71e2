"""Catalog repository - read-only catalog snapshot for reference matching"""

from typing import Callable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from debitflow.domain.extraction.models import CatalogEntry
from debitflow.domain.extraction.ports import CatalogStorePort
from debitflow.models.catalog_reference import CatalogReference


class SqlAlchemyCatalogStore(CatalogStorePort):
    """Reads the catalog_references table in one query."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def list_entries(self) -> List[CatalogEntry]:
        session = self._session_factory()
        try:
            rows = session.execute(
                select(CatalogReference).order_by(CatalogReference.code)
            ).scalars().all()
            return [
                CatalogEntry(
                    id=str(row.id),
                    code=row.code,
                    description=row.description or "",
                    unit_weight=row.unit_weight,
                )
                for row in rows
            ]
        finally:
            session.close()
