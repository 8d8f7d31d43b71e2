"""Read access to the extraction audit log"""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from debitflow.models.extraction_log import ExtractionLog


class ExtractionLogRepository:
    """Queries over extraction_logs. The table is append-only, so there are
    no update or delete methods."""

    def __init__(self, db: Session):
        self.db = db

    def list_logs(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ExtractionLog], int]:
        """Newest entries first.

        Returns:
            Tuple of (page of entries, total matching count)
        """
        query = select(ExtractionLog)
        count_query = select(func.count()).select_from(ExtractionLog)
        if status:
            query = query.where(ExtractionLog.status == status)
            count_query = count_query.where(ExtractionLog.status == status)

        total = self.db.execute(count_query).scalar_one()
        rows = self.db.execute(
            query.order_by(ExtractionLog.created_at.desc()).limit(limit).offset(offset)
        ).scalars().all()
        return list(rows), total

    def get_log(self, log_id: UUID) -> Optional[ExtractionLog]:
        return self.db.get(ExtractionLog, log_id)
