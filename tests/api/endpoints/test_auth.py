# tests/api/endpoints/test_auth.py
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from serialtrack.api.api import api_router
from serialtrack.api.deps import get_db
from serialtrack.core.config import settings
from serialtrack.core.security import create_refresh_token

API = settings.API_V1_STR


@pytest.fixture()
def auth_client(db):
    """Client without an authentication override, so tokens are checked for real."""
    app = FastAPI()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.include_router(api_router, prefix=API)
    return TestClient(app)


def _login(client, username, password="secret123"):
    return client.post(f"{API}/auth/token", data={"username": username, "password": password})


def test_login_and_use_token(auth_client, regular_user):
    response = _login(auth_client, "clerk@serialtrack.io")
    assert response.status_code == 200
    tokens = response.json()
    assert tokens["token_type"] == "bearer"

    me = auth_client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "clerk"


def test_login_with_username(auth_client, regular_user):
    assert _login(auth_client, "clerk").status_code == 200


def test_login_wrong_password(auth_client, regular_user):
    response = _login(auth_client, "clerk", "nope")
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


def test_protected_route_requires_token(auth_client):
    assert auth_client.get(f"{API}/inventory/").status_code == 401
    response = auth_client.get(f"{API}/inventory/", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_refresh_token_cannot_authenticate(auth_client, regular_user):
    refresh = create_refresh_token(regular_user.id)
    response = auth_client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {refresh}"})
    assert response.status_code == 401


def test_refresh(auth_client, regular_user):
    tokens = _login(auth_client, "clerk").json()
    response = auth_client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["access_token"]

    bad = auth_client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert bad.status_code == 401


def test_change_password(user_client):
    payload = {"current_password": "secret123", "new_password": "newsecret", "confirm_password": "newsecret"}
    assert user_client.put(f"{API}/auth/me/password", json=payload).status_code == 204

    payload["current_password"] = "wrong"
    assert user_client.put(f"{API}/auth/me/password", json=payload).status_code == 400

    mismatch = {"current_password": "newsecret", "new_password": "a1b2c3d4", "confirm_password": "zzz"}
    assert user_client.put(f"{API}/auth/me/password", json=mismatch).status_code == 422
