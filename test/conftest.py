"""
Shared fixtures: in-memory database, API client with the DB dependency overridden, seeded catalog.
"""
import os

# Must be set before the app modules read them
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from arkham_tracker.api.database import Base, get_db
from arkham_tracker.api.main import app
from arkham_tracker.api.models import CatalogInvestigator, User

ROLAND = {
    "code": "roland_banks",
    "name": "Roland Banks",
    "subname": "The Fed",
    "faction_name": "Guardian",
    "health": 8,
    "sanity": 5,
    "skill_willpower": 3,
    "skill_intellect": 3,
    "skill_combat": 4,
    "skill_agility": 2,
    "real_text": "[reaction] After you defeat an enemy: Discover 1 clue at your location.",
    "imagesrc": "/bundles/cards/01001.png",
}
AGNES = {
    "code": "agnes_baker",
    "name": "Agnes Baker",
    "subname": "The Waitress",
    "faction_name": "Mystic",
    "health": 6,
    "sanity": 8,
    "skill_willpower": 5,
    "skill_intellect": 2,
    "skill_combat": 2,
    "skill_agility": 3,
    "real_text": None,
    "imagesrc": "",
}
WENDY = {
    "code": "wendy_adams",
    "name": "Wendy Adams",
    "subname": "The Urchin",
    "faction_name": "Survivor",
    "health": 7,
    "sanity": 7,
    "skill_willpower": 4,
    "skill_intellect": 3,
    "skill_combat": 1,
    "skill_agility": 4,
    "real_text": None,
    "imagesrc": "",
}


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db):
    """Three catalog investigators."""
    for card in (ROLAND, AGNES, WENDY):
        db.add(CatalogInvestigator(**card))
    db.commit()
    return db


@pytest.fixture
def user(db):
    u = User(id="user-1", email="carolyn@example.com", username="carolyn", password_hash="x")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username="daisy", email=None, password="necronomicon"):
    """Register a user and return Authorization headers."""
    response = client.post("/auth/register", json={
        "email": email or f"{username}@example.com",
        "username": username,
        "password": password,
    })
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return register(client)
