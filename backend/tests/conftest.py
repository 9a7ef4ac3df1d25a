"""
Test fixtures for Adapta.

Every test gets its own SQLite file and upload dir. The Anthropic key is
blanked so nothing can reach the network; tests that need model output use
the `fake_llm` fixture, which replaces brain.llm.complete with canned replies.
"""

from __future__ import annotations

import json

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from server import app, config
from server.database import get_db, init_db
from brain import llm


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    db_file = str(tmp_path / "test.db")
    monkeypatch.setattr(config, "DB_PATH", db_file)
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(llm, "_client", None)
    init_db()
    return db_file


@pytest.fixture
def db():
    conn = get_db()
    yield conn
    conn.close()


class FakeLLM:
    """Stands in for brain.llm.complete; replies are consumed in order."""

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)
        return self

    def sources(self):
        return [c["source"] for c in self.calls]

    def __call__(self, prompt, *, source, **kwargs):
        self.calls.append({"prompt": prompt, "source": source, **kwargs})
        if not self.replies:
            raise AssertionError(f"Unexpected LLM call from {source}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply if isinstance(reply, str) else json.dumps(reply)


@pytest.fixture
def fake_llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setattr(llm, "complete", fake)
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "test-key")
    return fake


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def signup(client, email="ana@example.com", name="Ana", **overrides) -> dict:
    """Create a user and authenticate `client` as them via Bearer header."""
    body = {"name": name, "email": email, "password": "secret123", "daily_hours": 4, **overrides}
    resp = await client.post("/api/auth/signup", json=body)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    client.cookies.clear()
    client.headers["Authorization"] = f"Bearer {data['token']}"
    return data


@pytest_asyncio.fixture
async def auth_client(client):
    await signup(client)
    return client


def today() -> str:
    from users.utils import local_today
    return local_today({"timezone_offset": 0})


def task_dict(subject="Calculus", subtopic="Limits", date=None, session_type="Core Learning", **extra) -> dict:
    """A session in the camelCase shape the model returns."""
    return {
        "subject": subject,
        "topic": extra.pop("topic", subject),
        "subtopic": subtopic,
        "duration": extra.pop("duration", "45 mins"),
        "date": date or today(),
        "sessionType": session_type,
        "aiExplanation": extra.pop("aiExplanation", "Fits your schedule"),
        "status": "pending",
        **extra,
    }
