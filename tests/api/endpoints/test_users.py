# tests/api/endpoints/test_users.py
from serialtrack.core.config import settings

API = settings.API_V1_STR


def test_admin_lists_users(client, regular_user):
    response = client.get(f"{API}/users/")
    assert response.status_code == 200
    assert {u["username"] for u in response.json()} == {"admin", "clerk"}


def test_regular_user_is_forbidden(user_client):
    response = user_client.get(f"{API}/users/")
    assert response.status_code == 403
    assert response.json()["detail"] == "The user doesn't have sufficient privileges"


def test_me(user_client):
    response = user_client.get(f"{API}/users/me")
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "clerk@serialtrack.io"
    assert data["is_admin"] is False
    assert "hashed_password" not in data


def test_create_user(client):
    payload = {
        "email": "tech@serialtrack.io",
        "username": "tech",
        "password": "fieldtech1",
        "role": "user",
    }
    response = client.post(f"{API}/users/", json=payload)
    assert response.status_code == 201
    assert response.json()["username"] == "tech"

    assert client.post(f"{API}/users/", json=payload).status_code == 409

    payload.update(email="short@serialtrack.io", username="short", password="abc")
    assert client.post(f"{API}/users/", json=payload).status_code == 400


def test_update_and_delete_user(client, regular_user):
    response = client.put(f"{API}/users/{regular_user.id}", json={"full_name": "Head Clerk"})
    assert response.status_code == 200
    assert response.json()["full_name"] == "Head Clerk"

    response = client.delete(f"{API}/users/{regular_user.id}")
    assert response.status_code == 200
    assert response.json()["username"] == "clerk"
    assert client.get(f"{API}/users/{regular_user.id}").status_code == 404


def test_admin_cannot_delete_self(client, admin_user):
    response = client.delete(f"{API}/users/{admin_user.id}")
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot delete your own account."


def test_statistics(client, regular_user):
    response = client.get(f"{API}/users/statistics")
    assert response.status_code == 200
    assert response.json()["total_users"] == 2
