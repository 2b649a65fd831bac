import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.main import app
from app.database import Base, get_db
from seed import seed

TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_session():
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Ensure all connections share same in-memory DB
    )
    Base.metadata.create_all(engine)
    TestSession = sessionmaker(bind=engine)

    # Demo inventory: CHR001..CHR008
    db = TestSession()
    seed(db)
    db.close()

    yield TestSession
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def client(test_session):
    def override_get_db():
        db = test_session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app, headers={"X-Operator": "teacher@school"}) as c:
        yield c

    app.dependency_overrides.clear()
