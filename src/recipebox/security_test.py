import os
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from .main import app
from .security import CurrentUserId, OptionalUserId


@pytest.fixture
def api_key():
    return "test-api-key-12345"


@pytest.fixture
def client_with_api_key(api_key):
    with patch.dict(os.environ, {"API_KEY": api_key}):
        yield TestClient(app), api_key


@pytest.fixture
def identity_client():
    identity_app = FastAPI()

    @identity_app.get("/me")
    async def me(user_id: CurrentUserId):
        return {"userId": user_id}

    @identity_app.get("/maybe")
    async def maybe(user_id: OptionalUserId):
        return {"userId": user_id}

    return TestClient(identity_app)


class TestRootEndpointAuth:
    def test_root_returns_401_without_api_key(self, client_with_api_key):
        client, _ = client_with_api_key
        response = client.get("/")
        assert response.status_code == 401

    def test_root_returns_401_with_invalid_api_key(self, client_with_api_key):
        client, _ = client_with_api_key
        response = client.get("/", headers={"X-API-Key": "invalid-key"})
        assert response.status_code == 401

    def test_root_returns_401_response_body(self, client_with_api_key):
        client, _ = client_with_api_key
        response = client.get("/")
        assert response.json() == {"detail": "Invalid or missing API key"}

    def test_root_returns_200_with_valid_api_key(self, client_with_api_key):
        client, api_key = client_with_api_key
        response = client.get("/", headers={"X-API-Key": api_key})
        assert response.status_code == 200
        assert response.json() == {"message": "RecipeBox API"}

    def test_unset_api_key_rejects_everything(self):
        with patch.dict(os.environ, {}, clear=True):
            response = TestClient(app).get("/", headers={"X-API-Key": ""})
        assert response.status_code == 401


class TestHealthEndpointNoAuth:
    def test_health_returns_200_without_api_key(self, client_with_api_key):
        client, _ = client_with_api_key
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_ok_status(self, client_with_api_key):
        client, _ = client_with_api_key
        response = client.get("/health")
        assert response.json()["status"] == "ok"


class TestUserIdentity:
    def test_current_user_from_header(self, identity_client):
        response = identity_client.get("/me", headers={"X-User-Id": " u1 "})
        assert response.json() == {"userId": "u1"}

    def test_current_user_required(self, identity_client):
        response = identity_client.get("/me")
        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}

    def test_optional_user_blank_is_anonymous(self, identity_client):
        response = identity_client.get("/maybe", headers={"X-User-Id": "  "})
        assert response.json() == {"userId": None}
