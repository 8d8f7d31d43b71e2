"""Debit sheet (production order) and its line items.

A debit sheet lists the stone pieces to cut for one client order. The ARC
reference number is the business key: a unique constraint on it is the
actual guard against importing the same document twice.
"""

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, Text, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base


class DebitSheet(Base):
    """Debit sheet header with summary fields derived from its items."""

    __tablename__ = 'debit_sheets'
    __table_args__ = (
        Index('ix_debit_sheets_user_id_created_at', 'user_id', 'created_at'),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=True, comment="Submitting user")

    order_number = Column(Text, nullable=True, comment="OS number")
    reference_number = Column(
        Text,
        nullable=True,
        unique=True,
        comment="ARC number; NULL when not found on the document"
    )
    order_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True, comment="Délai")
    lead_time_days = Column(Integer, nullable=True, comment="due_date - order_date")
    client_name = Column(Text, nullable=True)
    site_reference = Column(Text, nullable=True, comment="Chantier")
    salesperson_code = Column(Text, nullable=True, comment="Resp / Cial initials")

    material_summary = Column(Text, nullable=True, comment="Most frequent item material")
    thickness_summary = Column(Text, nullable=True, comment="Common thickness or 'mixed'")
    total_area_m2 = Column(Float, nullable=False, default=0.0)
    total_volume_m3 = Column(Float, nullable=False, default=0.0)
    declared_total_quantity = Column(Float, nullable=True, comment="Cumul Qté printed on the sheet")

    confidence = Column(Float, nullable=True)
    needs_review = Column(Boolean, nullable=False, default=False)
    source_document = Column(Text, nullable=True)

    finished = Column(Boolean, nullable=False, default=False)
    delivered = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    items = relationship(
        "DebitItem",
        back_populates="sheet",
        cascade="all, delete-orphan",
        order_by="DebitItem.line_no",
    )

    def __repr__(self) -> str:
        return f"<DebitSheet(id={self.id}, reference_number={self.reference_number})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id) if self.user_id else None,
            "order_number": self.order_number,
            "reference_number": self.reference_number,
            "order_date": self.order_date.isoformat() if self.order_date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "lead_time_days": self.lead_time_days,
            "client_name": self.client_name,
            "site_reference": self.site_reference,
            "salesperson_code": self.salesperson_code,
            "material_summary": self.material_summary,
            "thickness_summary": self.thickness_summary,
            "total_area_m2": self.total_area_m2,
            "total_volume_m3": self.total_volume_m3,
            "declared_total_quantity": self.declared_total_quantity,
            "confidence": self.confidence,
            "needs_review": self.needs_review,
            "source_document": self.source_document,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class DebitItem(Base):
    """One piece line of a debit sheet."""

    __tablename__ = 'debit_items'
    __table_args__ = (
        Index('ix_debit_items_sheet_id_line_no', 'sheet_id', 'line_no'),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    sheet_id = Column(
        Uuid,
        ForeignKey('debit_sheets.id', ondelete='CASCADE'),
        nullable=False
    )
    line_no = Column(Integer, nullable=False)

    description = Column(Text, nullable=True)
    material_name = Column(Text, nullable=True)
    finish = Column(Text, nullable=True)
    length_cm = Column(Float, nullable=False, default=0.0)
    width_cm = Column(Float, nullable=False, default=0.0)
    thickness_cm = Column(Float, nullable=False, default=0.0)
    piece_count = Column(Integer, nullable=False, default=0)
    declared_quantity = Column(Float, nullable=False, default=0.0)
    area_m2 = Column(Float, nullable=True, comment="Set for slab lines")
    volume_m3 = Column(Float, nullable=True, comment="Set for block lines")
    edge = Column(Text, nullable=True, comment="Chant")
    appliance_number = Column(Text, nullable=True)

    catalog_reference_id = Column(
        Uuid,
        ForeignKey('catalog_references.id', ondelete='SET NULL'),
        nullable=True
    )
    matched = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    sheet = relationship("DebitSheet", back_populates="items")

    def __repr__(self) -> str:
        return f"<DebitItem(sheet_id={self.sheet_id}, line_no={self.line_no})>"
