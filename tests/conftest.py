"""
Test configuration.

The app reads its settings at import time, so the database URL is pointed at
a throwaway SQLite file before anything from shortlet is imported.
"""
import os
import tempfile
import uuid
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="shortlet-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'api.db'}"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("SMTP_HOST", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from shortlet.api.dependencies import get_notifier  # noqa: E402
from shortlet.main import app  # noqa: E402


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    async def notify(self, booking, new_status):
        self.calls.append((booking.id, new_status))
        if self.fail:
            raise RuntimeError("smtp down")


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)


def register(client, role="user", name="Test Person"):
    """Sign up a fresh account; returns (auth headers, user dict)."""
    res = client.post(
        "/api/auth/register",
        json={
            "name": name,
            "email": f"{role}-{uuid.uuid4().hex[:10]}@example.com",
            "password": "secret-password",
            "role": role,
        },
    )
    assert res.status_code == 201, res.text
    body = res.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]


@pytest.fixture
def guest(client):
    return register(client, "user", "Gina Guest")


@pytest.fixture
def agent(client):
    return register(client, "agent", "Abe Agent")


@pytest.fixture
def listing(client, agent):
    headers, _ = agent
    res = client.post(
        "/api/agent/properties",
        headers=headers,
        json={
            "title": "Harbour loft",
            "description": "Two rooms over the harbour, sleeps four.",
            "price": "120.00",
        },
    )
    assert res.status_code == 201, res.text
    return res.json()


@pytest.fixture
def signup(client):
    """``signup(role, name)`` registers another account on demand."""

    def _signup(role="user", name="Test Person"):
        return register(client, role, name)

    return _signup
