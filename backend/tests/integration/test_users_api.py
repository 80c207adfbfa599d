"""Integration tests for the ``/api/v1/users`` session endpoints."""

from __future__ import annotations

import io

import pytest

from credvault.services.session import UserPublicOut
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

BASE = "/api/v1/users"


def _register_form(**overrides):
    form = {
        "fullName": "Ada Lovelace",
        "email": "ada@x.io",
        "username": "Ada",
        "password": "p@ss",
        "avatar": (io.BytesIO(b"\x89PNG"), "avatar.png"),
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


def _login(client, username: str, password: str = DEFAULT_PASSWORD):
    return client.post(f"{BASE}/login", json={"username": username, "password": password})


def _assert_problem(resp, status: int, code: str) -> dict:
    assert resp.status_code == status, resp.get_data(as_text=True)
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["code"] == code
    assert body["request_id"]
    return body


@pytest.fixture()
def user(session):
    """Persisted user visible to request-scoped sessions."""
    u = UserFactory(username="grace", email="grace@x.io", full_name="Grace Hopper")
    session.commit()
    # Requests close the session, so hand tests a detached snapshot.
    return UserPublicOut.from_model(u)


# ------------------------------ register ---------------------------------- #
class TestRegisterEndpoint:
    def test_register_returns_public_user(self, client, object_store, upload_dir):
        resp = client.post(
            f"{BASE}/register",
            data=_register_form(coverImage=(io.BytesIO(b"jpeg"), "cover.jpg")),
            content_type="multipart/form-data",
        )

        assert resp.status_code == 201, resp.get_data(as_text=True)
        body = resp.get_json()
        assert body["message"] == "User registered successfully"
        data = body["data"]
        assert data["username"] == "ada"
        assert data["fullName"] == "Ada Lovelace"
        assert data["avatar"].startswith("https://assets.test/")
        assert data["coverImage"].startswith("https://assets.test/")
        assert "password" not in data and "refreshToken" not in data
        assert list(upload_dir.iterdir()) == []

    def test_missing_avatar(self, client, object_store, upload_dir):
        resp = client.post(
            f"{BASE}/register",
            data=_register_form(avatar=None),
            content_type="multipart/form-data",
        )

        body = _assert_problem(resp, 400, "validation_error")
        assert body["detail"] == "Avatar file is required"

    def test_blank_field(self, client, object_store, upload_dir):
        resp = client.post(
            f"{BASE}/register",
            data=_register_form(email="  "),
            content_type="multipart/form-data",
        )

        body = _assert_problem(resp, 400, "validation_error")
        assert body["detail"] == "All fields are required"

    def test_duplicate_username(self, client, object_store, upload_dir, user):
        resp = client.post(
            f"{BASE}/register",
            data=_register_form(username="GRACE", email="other@x.io"),
            content_type="multipart/form-data",
        )

        _assert_problem(resp, 409, "conflict")
        assert object_store.attempts == []

    def test_avatar_upload_failure(self, client, object_store, upload_dir):
        object_store.fail_all = True

        resp = client.post(
            f"{BASE}/register", data=_register_form(), content_type="multipart/form-data"
        )

        _assert_problem(resp, 400, "upload_failed")


# -------------------------------- login ----------------------------------- #
class TestLoginEndpoint:
    def test_login_sets_cookies_and_returns_tokens(self, client, object_store, user):
        resp = _login(client, "grace")

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["user"]["id"] == user.id
        assert data["accessToken"] and data["refreshToken"]
        assert client.get_cookie("accessToken").value == data["accessToken"]
        assert client.get_cookie("refreshToken").value == data["refreshToken"]
        set_cookie = resp.headers.getlist("Set-Cookie")
        assert all("HttpOnly" in header for header in set_cookie)

    def test_login_by_email(self, client, object_store, user):
        resp = client.post(
            f"{BASE}/login", json={"email": "grace@x.io", "password": DEFAULT_PASSWORD}
        )

        assert resp.status_code == 200

    def test_wrong_password(self, client, object_store, user):
        body = _assert_problem(_login(client, "grace", "wrong"), 401, "unauthorized")
        assert body["detail"] == "Invalid user credentials"

    def test_missing_identifier(self, client, object_store):
        resp = client.post(f"{BASE}/login", json={"password": "x"})

        _assert_problem(resp, 400, "validation_error")

    def test_unknown_account_hidden_by_default(self, client, object_store):
        _assert_problem(_login(client, "ghost"), 401, "unauthorized")

    def test_unknown_account_reported_when_not_hidden(self, app, client, object_store, monkeypatch):
        monkeypatch.setitem(app.config, "AUTH_HIDE_UNKNOWN_ACCOUNTS", False)

        _assert_problem(_login(client, "ghost"), 404, "not_found")


# ------------------------------- session ---------------------------------- #
class TestSessionEndpoints:
    def test_current_user_with_bearer_token(self, app, object_store, user):
        token = _login(app.test_client(), "grace").get_json()["data"]["accessToken"]
        bare = app.test_client(use_cookies=False)

        resp = bare.get(f"{BASE}/current-user", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["username"] == "grace"

    def test_current_user_with_cookie(self, client, object_store, user):
        _login(client, "grace")

        resp = client.get(f"{BASE}/current-user")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["email"] == "grace@x.io"

    def test_current_user_requires_token(self, client):
        _assert_problem(client.get(f"{BASE}/current-user"), 401, "unauthorized")

    def test_current_user_rejects_refresh_token_as_bearer(self, client, object_store, user):
        refresh = _login(client, "grace").get_json()["data"]["refreshToken"]
        bare = client.application.test_client(use_cookies=False)

        resp = bare.get(f"{BASE}/current-user", headers={"Authorization": f"Bearer {refresh}"})

        _assert_problem(resp, 401, "unauthorized")

    def test_refresh_with_cookie_rotates_tokens(self, client, object_store, user):
        old = _login(client, "grace").get_json()["data"]["refreshToken"]

        resp = client.post(f"{BASE}/refresh-token")

        assert resp.status_code == 200
        new = resp.get_json()["data"]["refreshToken"]
        assert new != old
        assert client.get_cookie("refreshToken").value == new

    def test_refresh_with_body_and_reuse_rejected(self, app, object_store, user):
        bare = app.test_client(use_cookies=False)
        old = _login(bare, "grace").get_json()["data"]["refreshToken"]

        first = bare.post(f"{BASE}/refresh-token", json={"refreshToken": old})
        second = bare.post(f"{BASE}/refresh-token", json={"refreshToken": old})

        assert first.status_code == 200
        body = _assert_problem(second, 401, "unauthorized")
        assert body["detail"] == "Refresh token is expired or used"

    def test_refresh_without_token(self, app, object_store):
        bare = app.test_client(use_cookies=False)

        _assert_problem(bare.post(f"{BASE}/refresh-token", json={}), 400, "validation_error")

    def test_logout_clears_cookies_and_session(self, client, object_store, user):
        refresh = _login(client, "grace").get_json()["data"]["refreshToken"]

        resp = client.post(f"{BASE}/logout")

        assert resp.status_code == 200
        assert client.get_cookie("accessToken") is None
        assert client.get_cookie("refreshToken") is None
        bare = client.application.test_client(use_cookies=False)
        again = bare.post(f"{BASE}/refresh-token", json={"refreshToken": refresh})
        _assert_problem(again, 401, "unauthorized")

    def test_logout_requires_token(self, client):
        _assert_problem(client.post(f"{BASE}/logout"), 401, "unauthorized")

    def test_change_password(self, client, object_store, user):
        _login(client, "grace")

        resp = client.post(
            f"{BASE}/change-password",
            json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "n3w-secret"},
        )

        assert resp.status_code == 200
        assert _login(client, "grace", "n3w-secret").status_code == 200
        assert _login(client, "grace").status_code == 401

    def test_change_password_wrong_old(self, client, object_store, user):
        _login(client, "grace")

        resp = client.post(
            f"{BASE}/change-password",
            json={"oldPassword": "nope", "newPassword": "n3w-secret"},
        )

        body = _assert_problem(resp, 401, "unauthorized")
        assert body["detail"] == "Invalid old password"


def test_register_then_login_flow(client, object_store, upload_dir):
    registered = client.post(
        f"{BASE}/register", data=_register_form(), content_type="multipart/form-data"
    )
    assert registered.status_code == 201

    resp = _login(client, "ada", "p@ss")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["user"]["id"] == registered.get_json()["data"]["id"]
