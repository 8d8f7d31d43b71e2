"""Catalog reference master data (read-only for the extraction pipeline)."""

from uuid import uuid4

from sqlalchemy import Column, Float, Text, Uuid

from .base import Base


class CatalogReference(Base):
    """Known material/equipment reference code."""

    __tablename__ = 'catalog_references'

    id = Column(Uuid, primary_key=True, default=uuid4)
    code = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    unit_weight = Column(Float, nullable=True, comment="kg per unit (m² or m³)")

    def __repr__(self) -> str:
        return f"<CatalogReference(code={self.code})>"
