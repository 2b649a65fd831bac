import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.database import Base
import app.models  # noqa: F401 (registers all models)
from app.models.chromebook import Chromebook
from app.services.audit_engine import AuditEngine
from app.store import SqlRecordStore


TEST_DB_URL = "sqlite:///:memory:"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture(scope="function")
def db():
    engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def store(db):
    return SqlRecordStore(db)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_chromebook(db):
    counter = {"n": 0}

    def _make(code=None, **fields):
        counter["n"] += 1
        cb = Chromebook(
            chromebook_id=code or f"CHR{counter['n']:03d}",
            model=fields.pop("model", "Chromebook Acer C733"),
            **fields,
        )
        db.add(cb)
        db.commit()
        db.refresh(cb)
        return cb

    return _make


@pytest.fixture
def engine(store, clock):
    return AuditEngine(store, "teacher@school", clock=clock).load()
