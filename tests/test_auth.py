import json

import httpx
import pytest
from fastapi.testclient import TestClient

from bullet_journal.auth import AuthClient
from bullet_journal.errors import AuthError
from bullet_journal.main import app, get_auth, get_store

BASE = "https://auth.example.test"


def provider(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/auth/v1/token":
        body = json.loads(request.content)
        if body["password"] != "hunter22":
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})
        return httpx.Response(200, json={
            "access_token": "tok-alice",
            "refresh_token": "ref",
            "expires_in": 3600,
            "user": {"id": "alice", "email": body["email"]},
        })
    if path == "/auth/v1/signup":
        return httpx.Response(200, json={"id": "new-user"})
    if path == "/auth/v1/recover":
        return httpx.Response(200, json={})
    if path == "/auth/v1/user":
        if request.headers.get("Authorization") != "Bearer tok-alice":
            return httpx.Response(401, json={"msg": "invalid JWT"})
        if request.method == "PUT":
            return httpx.Response(200, json={"id": "alice"})
        return httpx.Response(200, json={"id": "alice"})
    return httpx.Response(404)


@pytest.fixture()
def auth():
    http = httpx.Client(base_url=BASE, transport=httpx.MockTransport(provider))
    return AuthClient(BASE, client=http)


@pytest.fixture()
def authed_client(auth, memory_store):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_auth] = lambda: auth
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_sign_in(auth):
    session = auth.sign_in("alice@example.com", "hunter22")
    assert session.accessToken == "tok-alice"
    assert session.userId == "alice"


def test_sign_in_error_is_verbatim(auth):
    with pytest.raises(AuthError) as err:
        auth.sign_in("alice@example.com", "wrong")
    assert err.value.status_code == 400
    assert err.value.message == "Invalid login credentials"


def test_get_user(auth):
    assert auth.get_user("tok-alice") == "alice"


def test_login_endpoint(authed_client):
    resp = authed_client.post("/api/auth/login", json={"email": "alice@example.com", "password": "hunter22"})
    assert resp.status_code == 200
    assert resp.json()["userId"] == "alice"


def test_login_failure_shows_provider_message(authed_client):
    resp = authed_client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid login credentials"


def test_signup_and_reset(authed_client):
    assert authed_client.post("/api/auth/signup", json={"email": "a@example.com", "password": "hunter22"}).status_code == 202
    assert authed_client.post("/api/auth/reset-password", json={"email": "a@example.com"}).status_code == 202


def test_update_password_needs_token(authed_client):
    assert authed_client.put("/api/auth/password", json={"password": "x"}).status_code == 401
    resp = authed_client.put(
        "/api/auth/password", json={"password": "newpass"}, headers={"Authorization": "Bearer tok-alice"}
    )
    assert resp.status_code == 200


def test_tasks_require_bearer_token(authed_client):
    assert authed_client.get("/api/tasks").status_code == 401
    assert authed_client.get("/api/tasks", headers={"Authorization": "Bearer bad"}).status_code == 401


def test_tasks_are_scoped_to_token_owner(authed_client, memory_store):
    memory_store.insert("bob", "not yours")
    headers = {"Authorization": "Bearer tok-alice"}
    created = authed_client.post("/api/tasks", json={"text": "mine"}, headers=headers)
    assert created.json()["ownerId"] == "alice"
    assert [t["text"] for t in authed_client.get("/api/tasks", headers=headers).json()] == ["mine"]


def test_auth_endpoints_without_provider(client):
    resp = client.post("/api/auth/login", json={"email": "a@example.com", "password": "x"})
    assert resp.status_code == 503


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


def half_broken(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/auth/v1/token":
        return httpx.Response(200, json={"access_token": "tok"})
    return httpx.Response(200, json={"aud": "authenticated"})


def client_for(handler):
    return AuthClient(BASE, client=httpx.Client(base_url=BASE, transport=httpx.MockTransport(handler)))


def test_unreachable_provider_is_502(memory_store):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_auth] = lambda: client_for(unreachable)
    with TestClient(app) as c:
        resp = c.get("/api/tasks", headers={"Authorization": "Bearer tok-alice"})
    app.dependency_overrides.clear()

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Authentication service is unavailable"


def test_sign_in_without_user_is_rejected():
    with pytest.raises(AuthError) as err:
        client_for(half_broken).sign_in("alice@example.com", "hunter22")
    assert err.value.status_code == 502


def test_get_user_without_id_is_rejected():
    with pytest.raises(AuthError) as err:
        client_for(half_broken).get_user("tok")
    assert err.value.status_code == 502


def test_tasks_with_malformed_user_response_is_502(memory_store):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_auth] = lambda: client_for(half_broken)
    with TestClient(app) as c:
        resp = c.get("/api/tasks", headers={"Authorization": "Bearer tok"})
    app.dependency_overrides.clear()

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Unexpected auth provider response"
