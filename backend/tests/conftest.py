import os
import tempfile

# Settings are read at import time; point the app at a throwaway database first.
_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "test_fundingsync.db")
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{_TEST_DB_PATH}")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fundingsync.db.base import Base
from fundingsync.db.document_store import DocumentStore
from fundingsync.models.collections import INVESTMENTS, PROJECTS

import fundingsync.models  # noqa: F401  registers every table on Base.metadata


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> DocumentStore:
    return DocumentStore(session_factory, max_delivery_attempts=3)


@pytest.fixture
def recorded_events(store):
    """Every change event the store publishes for projects and investments."""
    events = []
    store.subscribe(PROJECTS, events.append)
    store.subscribe(INVESTMENTS, events.append)
    return events


@pytest.fixture
def scenario(store) -> DocumentStore:
    """Project P with a pending, a signed and a legacy "approved" investment."""
    store.set(PROJECTS, "P", {"titleEn": "Palm Residences", "targetAmount": 1_000_000})
    store.set(INVESTMENTS, "A", {"projectId": "P", "investorUid": "u3", "amount": 100000, "status": "pending"})
    store.set(INVESTMENTS, "B", {"projectId": "P", "investorUid": "u1", "amount": 50000, "status": "signed"})
    store.set(
        INVESTMENTS,
        "C",
        {"projectId": "P", "investorUid": "u2", "amount": 20000, "status": "approved", "finalizedAt": None},
    )
    return store
