import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from database import build_engine, init_db
from entities import Document
from persistence import KeyValueSlot
from seed import seed_document
from store import JournalStore, get_store


class BrokenSlot:
    """A slot whose storage is gone: every access fails."""

    def read(self):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    def write(self, value):
        raise OperationalError("UPDATE", {}, Exception("database or disk is full"))

    def clear(self):
        raise OperationalError("DELETE", {}, Exception("disk I/O error"))


@pytest.fixture
def broken_slot():
    return BrokenSlot()


@pytest.fixture
def slot(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'journal.db'}")
    init_db(engine)
    yield KeyValueSlot(sessionmaker(bind=engine), "test_journal")
    engine.dispose()


@pytest.fixture
def seeded(slot):
    return JournalStore(slot, seed_document())


@pytest.fixture
def empty_store(slot):
    return JournalStore(slot, Document())


@pytest.fixture
def client(seeded):
    from main import app
    app.dependency_overrides[get_store] = lambda: seeded
    yield TestClient(app)
    app.dependency_overrides.clear()
