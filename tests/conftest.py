# tests/conftest.py
"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database and a scripted stand-in
for the generation service, wired into the real FastAPI application.
"""

import os
import uuid

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GEMINI_API_KEY", "test-api-key")
os.environ["MLFLOW_TRACKING_URI"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from chat_backend.core.security import create_access_token
from chat_backend.db.session import Database
from chat_backend.models.message import Message
from chat_backend.models.user import User
from chat_backend.services.llm_service import get_llm_service
from main import create_application

TITLE = "Friendly Persian Greeting"


# =============================================================================
# Generation Fixtures
# =============================================================================

class ScriptedLLM:
    """Records every call; replies "reply #N", titles with TITLE."""

    title = TITLE

    def __init__(self):
        self.calls = []
        self.failures = {}
        self._replies = 0

    def fail_on(self, step, exc):
        self.failures[step] = exc

    def calls_for(self, step):
        return [turns for s, turns in self.calls if s == step]

    async def generate(self, turns, step="generate_reply", owner_kind="unknown"):
        self.calls.append((step, list(turns)))
        if step in self.failures:
            raise self.failures[step]
        if step == "derive_title":
            return TITLE
        self._replies += 1
        return f"reply #{self._replies}"


@pytest.fixture
def llm():
    return ScriptedLLM()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def database():
    return Database("sqlite+aiosqlite:///:memory:")


@pytest.fixture
def client(database, llm):
    app = create_application(database, create_tables=True)
    app.dependency_overrides[get_llm_service] = lambda: llm
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def run_db(client, database):
    """Run `fn(session)` on the app's event loop and return its result."""

    def _run(fn):
        async def _call():
            async with database.session() as session:
                return await fn(session)

        return client.portal.call(_call)

    return _run


@pytest.fixture
def make_user(run_db):
    def _make(message_count=0):
        async def _insert(session):
            user = User(
                name="Test User",
                email=f"{uuid.uuid4().hex}@example.com",
                message_count=message_count,
            )
            session.add(user)
            await session.commit()
            return user.id

        return run_db(_insert)

    return _make


@pytest.fixture
def count_messages(run_db):
    def _count(chat_id):
        async def _query(session):
            result = await session.execute(
                select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
            )
            return result.scalar_one()

        return run_db(_query)

    return _count


@pytest.fixture
def auth_headers():
    def _headers(user_id):
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture
def guest_chat(client):
    """A fresh chat owned by guest G1."""
    response = client.post("/chats", json={"guest_id": "G1"})
    assert response.status_code == 201
    return response.json()
