"""
Shared fixtures

Settings are read at import time, so the environment is prepared before any
classchat module is imported.
"""
import asyncio
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="classchat-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'classchat.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient

from classchat.core.database import SessionLocal, drop_db, init_db
from classchat.models import UserRole
from classchat.services import UserService, chat_service
from classchat.utils import room_broadcaster


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh tables and an empty broadcaster for every test"""
    drop_db()
    init_db()

    room_broadcaster.connections.clear()
    room_broadcaster.subscriptions.clear()
    room_broadcaster.rooms.clear()
    room_broadcaster.relay = None
    room_broadcaster._tasks.clear()
    chat_service._announced.clear()

    yield


@pytest.fixture
def db():
    """Database session"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Test client sharing one event loop across HTTP and WebSocket calls"""
    from classchat.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def teacher(db):
    return UserService.create_user(db, "Ms. Frizzle", UserRole.TEACHER)


@pytest.fixture
def student(db):
    return UserService.create_user(db, "Arnold", UserRole.STUDENT)


class FakeWebSocket:
    """Stands in for a WebSocket; records what it was sent"""

    def __init__(self, fail: bool = False, delay: float = 0):
        self.sent = []
        self.fail = fail
        self.delay = delay
        self.closed = None

    async def send_json(self, payload):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(payload)

    async def close(self, code: int = 1000):
        self.closed = code


@pytest.fixture
def fake_websocket():
    return FakeWebSocket
