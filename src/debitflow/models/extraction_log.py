"""Extraction log model - immutable audit trail of extraction attempts.

One row per attempt, success or failure. Rows are append-only: nothing in
the application updates or deletes them. The raw model sample is kept so a
parsing bug can be replayed from the log alone.
"""

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, Index, Integer, Text, Uuid

from .base import Base, PortableJSONB


class ExtractionLog(Base):
    __tablename__ = 'extraction_logs'
    __table_args__ = (
        Index('ix_extraction_logs_created_at', 'created_at'),
        Index('ix_extraction_logs_status', 'status'),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    user_id = Column(Uuid, nullable=True)
    document_name = Column(Text, nullable=False)
    method = Column(Text, nullable=False, comment="model, layout_fallback, excel_template or none")
    status = Column(Text, nullable=False, comment="success, needs_review or error")
    raw_model_sample = Column(Text, nullable=True, comment="Truncated raw model reply")
    parsed_draft = Column(PortableJSONB, nullable=True)
    warnings = Column(PortableJSONB, nullable=False, default=list)
    steps = Column(PortableJSONB, nullable=False, default=list)
    confidence = Column(Float, nullable=True)
    duration_ms = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    order_id = Column(Uuid, nullable=True, comment="Committed debit sheet, if any")
    metadata_json = Column(PortableJSONB, nullable=True)

    def to_dict(self, include_draft: bool = False) -> Dict[str, Any]:
        data = {
            "id": str(self.id),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "document_name": self.document_name,
            "method": self.method,
            "status": self.status,
            "warnings": self.warnings or [],
            "confidence": self.confidence,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
            "order_id": str(self.order_id) if self.order_id else None,
        }
        if include_draft:
            data["raw_model_sample"] = self.raw_model_sample
            data["parsed_draft"] = self.parsed_draft
            data["steps"] = self.steps or []
            data["metadata"] = self.metadata_json
        return data
