import random

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from app.database import get_session
from app.services.madness import create_mm_pool
from app.services.madness_demo import seed_demo

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)

@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

@pytest.fixture(name="mm_pool")
def mm_pool_fixture(session: Session):
    """A demo blind-draw pool with 64 teams and 64 entries, draw not yet run."""
    mm_pool = create_mm_pool(session, "Office Pool", 2024, pot_amount=1600.0, demo_mode=True)
    seed_demo(session, mm_pool, rng=random.Random(7))
    return mm_pool
