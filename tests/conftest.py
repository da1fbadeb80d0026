"""Shared fixtures: in-memory database, seeded lookup tables, API client."""
import os

# Set env vars BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base
from app import crud


@pytest.fixture(scope="session")
def test_db_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(test_db_engine):
    """Fresh session per test; everything is rolled back afterwards."""
    connection = test_db_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# ── Lookup fixtures ──

@pytest.fixture
def rel_types(db_session):
    return {
        "friend": crud.create_relationship_type(db_session, "FRI", "Friend"),
        "parent": crud.create_relationship_type(db_session, "PAR", "Parent"),
        "colleague": crud.create_relationship_type(db_session, "COL", "Colleague"),
    }


@pytest.fixture
def title_dr(db_session):
    return crud.create_title(db_session, "DR", "Dr")


@pytest.fixture
def gender_female(db_session):
    return crud.create_gender(db_session, "F", "Female")


# ── People ──

@pytest.fixture
def make_person(db_session):
    """Factory: make_person("Ann") -> Person with a unique email."""
    def _factory(first_name, last_name="Test", **kwargs):
        email = kwargs.pop("email", f"{first_name.lower()}.{last_name.lower()}@example.com")
        return crud.create_person(db_session, first_name, last_name, email, **kwargs)
    return _factory


@pytest.fixture
def link(db_session):
    """Factory: link(a, b, rel) creates the directed edge a -> b."""
    def _link(source, related, rel):
        return crud.create_person_relationship(db_session, source.id, related.id, rel.id)
    return _link


@pytest.fixture
def chain(make_person, link, rel_types):
    """1 -friend-> 2 -friend-> 3 -parent-> 4."""
    p1, p2, p3, p4 = (make_person(n) for n in ("One", "Two", "Three", "Four"))
    link(p1, p2, rel_types["friend"])
    link(p2, p3, rel_types["friend"])
    link(p3, p4, rel_types["parent"])
    return [p1, p2, p3, p4]


# ── FastAPI app fixtures ──

@pytest.fixture
def client(db_session):
    """TestClient whose get_db dependency yields the test session."""
    from app.main import app
    from app.db import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
