from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from ledger import ensure_default_categories, save_transaction
from schemas import TransactionIn


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    ensure_default_categories(session)
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def add_tx(db):
    """Insert a transaction with sensible defaults and return the row."""

    def _add(**overrides):
        values = {
            "amount": 1000.0,
            "type": "EXPENSE",
            "category": "Alimentación",
            "date": datetime(2026, 10, 15, 12, 0),
            "description": "Supermercado",
            "payment_method": "Débito",
        }
        values.update(overrides)
        return save_transaction(db, TransactionIn(**values))

    return _add


class FakeModels:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(text=item)


class FakeClient:
    def __init__(self, responses):
        self.models = FakeModels(responses)


@pytest.fixture
def fake_gemini(monkeypatch):
    """Replace the Gemini client; call with the raw texts the model should return."""
    import gemini_service

    def _install(*responses):
        client = FakeClient(responses)
        monkeypatch.setattr(gemini_service, "_mk_client", lambda: client)
        return client

    return _install
