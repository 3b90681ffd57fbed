# tests/test_main.py
import logging

from fastapi.testclient import TestClient

from najm.core.config import Settings, get_settings
from najm.main import app

client = TestClient(app)


def test_request_logging_is_off_by_default():
    assert Settings.model_fields["DEBUG_REQUESTS"].default is False


def test_requests_not_logged_unless_enabled(caplog):
    caplog.set_level(logging.INFO, logger="najm")

    assert client.get("/health").status_code == 200
    assert "GET /health" not in caplog.text


def test_requests_logged_when_enabled(caplog, monkeypatch):
    monkeypatch.setattr(get_settings(), "DEBUG_REQUESTS", True)
    caplog.set_level(logging.INFO, logger="najm")

    assert client.get("/health").status_code == 200
    assert "GET /health -> 200" in caplog.text
