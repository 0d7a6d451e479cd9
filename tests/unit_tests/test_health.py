from unittest.mock import MagicMock

import pytest
from fastapi import status

from database.exceptions import StoreConnectionError
import uploads_api.routers.health as health_module


@pytest.fixture
def adapter(monkeypatch):
    mock_adapter = MagicMock()
    mock_adapter.ping.return_value = True
    monkeypatch.setattr(health_module, "get_mongo_adapter", lambda settings: mock_adapter)
    return mock_adapter


def test_health_ready(client, adapter):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "ok",
        "environment": "test",
        "components": {"api": "ready", "database": "ready", "pdf_converter": "configured"},
        "ready": True,
    }


def test_health_degraded_when_ping_fails(client, adapter):
    adapter.ping.return_value = False

    body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["ready"] is False
    assert body["components"]["database"] == "error: ping failed"


def test_health_degraded_when_database_unreachable(client, adapter):
    adapter.connect.side_effect = StoreConnectionError("No servers found")

    body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["components"]["database"] == "error: MongoDB connection error: No servers found"


def test_health_reports_missing_converter(make_client, settings, adapter):
    client = make_client(settings.model_copy(update={"pdf_converter_url": None}))

    body = client.get("/health").json()

    assert body["components"]["pdf_converter"] == "not configured"
    # The converter is only needed for PDFs, so the API is still ready
    assert body["ready"] is True
