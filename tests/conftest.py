"""Pytest fixtures for DebitFlow tests.

Provides:
- In-memory SQLite engine and session factory (StaticPool, shared connection)
- Catalog seeding
- A scripted fake model provider
- Positioned-token builders for layout tests
- FastAPI TestClient with dependency overrides and a bearer token

Environment variables are set before any debitflow import so the cached
settings pick them up.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ["LLM_PROVIDER"] = ""
os.environ["LLM_RETRY_BASE_DELAY"] = "0"
os.environ["LOG_JSON"] = "false"
os.environ["DB_CREATE_TABLES"] = "false"

import io
from typing import Iterable, List, Optional, Sequence
from uuid import uuid4

import openpyxl
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from debitflow.domain.ai.ports import LLMProviderPort, LLMReply
from debitflow.domain.extraction.models import DocumentLayout, PositionedToken
from debitflow.domain.extraction.ports import LayoutExtractorPort
from debitflow.models import Base, CatalogReference


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_catalog(session_factory):
    """Insert catalog codes; returns the created rows' codes."""

    def _seed(codes: Iterable[str]) -> List[str]:
        session = session_factory()
        try:
            rows = [CatalogReference(code=code, description=f"{code} stock") for code in codes]
            session.add_all(rows)
            session.commit()
            return [row.code for row in rows]
        finally:
            session.close()

    return _seed


# =============================================================================
# MODEL PROVIDER
# =============================================================================

class FakeProvider(LLMProviderPort):
    """Provider returning scripted replies; exceptions in the script are raised."""

    name = "fake"

    def __init__(self, script: Sequence = (), documents: bool = False):
        self.script = list(script)
        self.documents = documents
        self.calls: List[dict] = []

    @property
    def supports_documents(self) -> bool:
        return self.documents

    def _next(self, **call) -> LLMReply:
        self.calls.append(call)
        outcome = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, LLMReply):
            return outcome
        return LLMReply(text=outcome, provider="fake", model="fake-model", tokens_out=100)

    def complete_with_document(self, document, media_type, prompt, system_prompt=None) -> LLMReply:
        return self._next(kind="document", media_type=media_type, prompt=prompt)

    def complete_text(self, prompt, system_prompt=None) -> LLMReply:
        return self._next(kind="text", prompt=prompt)


@pytest.fixture
def fake_provider_class():
    return FakeProvider


# =============================================================================
# LAYOUT
# =============================================================================

def make_row(y: float, texts: Sequence[str], page: int = 0, x_step: float = 40.0) -> List[PositionedToken]:
    """Tokens of one visual row, left to right."""
    return [
        PositionedToken(text=text, x=index * x_step, y=y, width=30.0, height=8.0, page=page)
        for index, text in enumerate(texts)
    ]


TABLE_HEADER = ["Item", "Matériaux", "Finition", "Long", "Larg", "Ep", "Nb", "Qté"]

HEADER_TEXT = "\n".join([
    "DBPM FICHE DE DEBIT",
    "OS N° 2451  ARC N° 10234",
    "Du : 15/01/2024  Délai : 29/01/2024",
    "Resp : JD",
    "MARBRERIE DUPONT",
    "Chantier : Villa Les Pins",
    "Cumul Qté : 1,71",
])


def sample_layout() -> DocumentLayout:
    """One-page debit sheet: a slab line and a block line."""
    tokens = (
        make_row(700, TABLE_HEADER)
        + make_row(680, ["Plan", "Cuisine", "GRANIT", "NOIR", "K2", "Polie", "250", "65", "3", "1", "1,63"])
        + make_row(660, ["Seuil", "MARBRE", "BLANC", "Q", "Brut", "100", "40", "10", "2", "0,08"])
    )
    return DocumentLayout(plain_text=HEADER_TEXT, pages=(tuple(tokens),))


class StaticLayoutExtractor(LayoutExtractorPort):
    """Extractor returning a fixed layout whatever the bytes."""

    def __init__(self, layout: DocumentLayout):
        self.layout = layout

    def can_handle(self, mime_type: str) -> bool:
        return True

    def extract(self, content: bytes) -> DocumentLayout:
        return self.layout


# =============================================================================
# SPREADSHEETS
# =============================================================================

def build_workbook(sheets: dict) -> bytes:
    """XLSX bytes from {sheet name: {"A1": value, ...}}."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, cells in sheets.items():
        sheet = workbook.create_sheet(title=name)
        for reference, value in cells.items():
            sheet[reference] = value
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def template_cells(rows: Optional[List[dict]] = None) -> dict:
    """Cells of a FICHE DEBIT DBPM sheet with two default item rows."""
    cells = {"C2": "JD", "C3": "MARBRERIE DUPONT", "G2": "2451", "G3": "Villa Les Pins"}
    rows = rows if rows is not None else [
        {"A": "1", "B": 2, "C": "GRANIT NOIR K2", "D": "Polie", "E": 120, "F": 60, "G": 3, "M": 1.44},
        {"A": "2", "B": 1, "C": "MARBRE BLANC Q", "D": "Brut", "E": 100, "F": 50, "G": 20, "N": 0.1},
    ]
    for offset, row in enumerate(rows):
        for column, value in row.items():
            cells[f"{column}{10 + offset}"] = value
    return cells


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def model_provider():
    """Provider injected into the API pipeline (None = model path disabled)."""
    return None


@pytest.fixture
def client(session_factory, model_provider):
    from debitflow.database import get_db
    from debitflow.dependencies import get_model_provider, get_session_factory
    from debitflow.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_model_provider] = lambda: model_provider

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def auth_headers(user_id):
    from debitflow.auth.jwt import create_access_token

    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
