from fastapi.testclient import TestClient

from recipebox.lib.store import MemoryStore
from recipebox.main import app

client = TestClient(app)


def test_healthcheck_returns_200():
    response = client.get("/health")
    assert response.status_code == 200


def test_healthcheck_response_body():
    response = client.get("/health")
    assert response.json()["status"] == "ok"


def test_healthcheck_response_structure():
    response = client.get("/health")
    data = response.json()
    assert "status" in data
    assert isinstance(data["status"], str)
    assert "store" in data


def test_healthcheck_reports_store_backend():
    app.state.store = MemoryStore()
    try:
        response = client.get("/health")
    finally:
        del app.state.store
    assert response.json() == {"status": "ok", "store": "memory"}


def test_healthcheck_without_store():
    response = TestClient(app).get("/health")
    assert response.json()["store"] is None
