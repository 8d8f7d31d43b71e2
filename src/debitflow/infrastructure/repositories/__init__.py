"""SQLAlchemy adapters for the catalog, order and audit stores."""

from .catalog_repository import SqlAlchemyCatalogStore
from .extraction_log_repository import ExtractionLogRepository
from .order_repository import SqlAlchemyOrderStore

__all__ = ["ExtractionLogRepository", "SqlAlchemyCatalogStore", "SqlAlchemyOrderStore"]
