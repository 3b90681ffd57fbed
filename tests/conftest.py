# tests/conftest.py
import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Point every path at a throwaway directory before najm.main is imported
_tmp = Path(tempfile.mkdtemp(prefix="najm-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp / 'najm.db'}"
os.environ["DATA_FILE"] = str(_tmp / "tickets.json")
os.environ["UPLOAD_DIR"] = str(_tmp / "uploads")
os.environ["TICKET_STORE"] = "sqlite"
os.environ["ADMIN_USER"] = "admin"
os.environ["ADMIN_PASS"] = "1234"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DEBUG_REQUESTS"] = "false"
for _key in (
    "OPENAI_API_KEY",
    "GROQ_API_KEY",
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_VOICE_ID",
    "AZURE_COMPUTER_VISION_KEY",
    "AZURE_COMPUTER_VISION_ENDPOINT",
):
    os.environ.pop(_key, None)

from fastapi.testclient import TestClient  # noqa: E402

from najm.auth import services as auth_service  # noqa: E402
from najm.chat.services import sessions  # noqa: E402
from najm.core.database import SessionLocal  # noqa: E402
from najm.main import app  # noqa: E402


def _login(username: str, password: str) -> dict:
    r = TestClient(app).post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def admin_headers():
    return _login("admin", "1234")


@pytest.fixture
def user_headers():
    with SessionLocal() as db:
        if not auth_service.get_user_by_username(db, "reviewer"):
            auth_service.create_user(db, "reviewer", "secret", role="user")
    return _login("reviewer", "secret")


@pytest.fixture
def ticket_id():
    return f"T-{uuid.uuid4().hex[:12]}"


@pytest.fixture(autouse=True)
def _reset_app_state():
    yield
    app.dependency_overrides.clear()
    sessions.clear()
