"""FastAPI dependency providers for the extraction pipeline.

Tests override get_session_factory and get_model_provider to run the
pipeline against an in-memory database and a fake model.
"""

from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from debitflow.config import Settings, get_settings
from debitflow.database import SessionLocal
from debitflow.domain.ai.ports import LLMProviderPort
from debitflow.extraction.gateway import OrderGateway
from debitflow.extraction.pipeline import ExtractionPipeline
from debitflow.infrastructure.ai import get_llm_provider
from debitflow.infrastructure.repositories import SqlAlchemyCatalogStore, SqlAlchemyOrderStore


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_model_provider(settings: Settings = Depends(get_settings)) -> Optional[LLMProviderPort]:
    """Configured model provider, None when the model path is disabled."""
    return get_llm_provider(settings)


def get_extraction_pipeline(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    provider: Optional[LLMProviderPort] = Depends(get_model_provider),
    settings: Settings = Depends(get_settings),
) -> ExtractionPipeline:
    """Build a pipeline for one request (stores are not shared between requests)."""
    gateway = OrderGateway(SqlAlchemyOrderStore(session_factory))
    catalog = SqlAlchemyCatalogStore(session_factory)
    return ExtractionPipeline.from_settings(settings, gateway, catalog, provider)
