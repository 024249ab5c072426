"""
Tests for /api/auth: the Google redirect flow and token verification.
"""

from urllib.parse import parse_qs, urlparse

import pytest
from bson import ObjectId

from core.config import settings
from db.database import USERS
from services.google_oauth import GoogleOAuthClient, GoogleOAuthError, get_google_client
from services.security import create_access_token, create_user_token


@pytest.fixture
def google(app, mocker):
    client = mocker.Mock(spec=GoogleOAuthClient)
    client.configured = True
    client.authorization_url.side_effect = lambda state: f"https://accounts.google.com/o/oauth2/v2/auth?state={state}"
    app.dependency_overrides[get_google_client] = lambda: client
    return client


def _redirect_params(resp):
    location = urlparse(resp.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == settings.frontend_url
    assert location.path == "/auth/callback"
    return {k: v[0] for k, v in parse_qs(location.query).items()}


def _start_login(client):
    resp = client.get("/api/auth/google", follow_redirects=False)
    state = parse_qs(urlparse(resp.headers["location"]).query)["state"][0]
    return resp, state


def test_google_login_redirects_with_state_cookie(client, google):
    resp, state = _start_login(client)

    assert resp.status_code == 307
    assert state
    assert "oauth_state" in resp.cookies


def test_google_login_unconfigured_is_503(client, google):
    google.configured = False

    resp = client.get("/api/auth/google", follow_redirects=False)

    assert resp.status_code == 503


def test_callback_success_creates_user_and_returns_token(client, repo, google):
    # Arrange
    _, state = _start_login(client)
    google.exchange_code.return_value = {"access_token": "ya29.token"}
    google.fetch_profile.return_value = {"id": "g-1", "email": "ada@example.com", "name": "Ada", "picture": ""}

    # Act
    resp = client.get("/api/auth/google/callback", params={"code": "abc", "state": state}, follow_redirects=False)

    # Assert
    params = _redirect_params(resp)
    assert "token" in params
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {params['token']}"})
    assert me.json()["email"] == "ada@example.com"
    assert me.json()["role"] == "user"
    assert repo.all(USERS)[0]["googleId"] == "g-1"
    google.exchange_code.assert_called_once_with("abc")


def test_callback_rejects_state_mismatch(client, google):
    _start_login(client)

    resp = client.get("/api/auth/google/callback", params={"code": "abc", "state": "forged"}, follow_redirects=False)

    assert _redirect_params(resp) == {"error": "invalid_state"}
    google.exchange_code.assert_not_called()


def test_callback_without_cookie_is_invalid_state(client, google):
    resp = client.get("/api/auth/google/callback", params={"code": "abc", "state": "s"}, follow_redirects=False)

    assert _redirect_params(resp) == {"error": "invalid_state"}


@pytest.mark.parametrize(
    "params, error",
    [({"error": "access_denied"}, "google_access_denied"), ({"state": "s"}, "no_code")],
)
def test_callback_error_redirects(client, google, params, error):
    resp = client.get("/api/auth/google/callback", params=params, follow_redirects=False)

    assert _redirect_params(resp) == {"error": error}


def test_callback_token_exchange_failure(client, google):
    _, state = _start_login(client)
    google.exchange_code.side_effect = GoogleOAuthError("no_token")

    resp = client.get("/api/auth/google/callback", params={"code": "abc", "state": state}, follow_redirects=False)

    assert _redirect_params(resp) == {"error": "no_token"}


def test_callback_unexpected_failure_is_auth_failed(client, google):
    _, state = _start_login(client)
    google.exchange_code.return_value = {"access_token": "ya29.token"}
    google.fetch_profile.side_effect = RuntimeError("boom")

    resp = client.get("/api/auth/google/callback", params={"code": "abc", "state": state}, follow_redirects=False)

    assert _redirect_params(resp) == {"error": "auth_failed"}


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_logout(client):
    resp = client.post("/api/auth/logout")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Logged out successfully"}


def test_verify_token(client, make_user):
    user = make_user(name="Ada", role="admin")

    resp = client.post("/api/auth/verify", json={"token": create_user_token(user)})

    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is True
    assert body["user"]["id"] == str(user.id)
    assert body["user"]["role"] == "admin"


def test_verify_token_errors(client):
    missing = client.post("/api/auth/verify", json={})
    invalid = client.post("/api/auth/verify", json={"token": "garbage"})
    orphan = client.post("/api/auth/verify", json={"token": create_access_token({"userId": str(ObjectId())})})

    assert missing.status_code == 400
    assert invalid.status_code == 401
    assert invalid.json() == {"valid": False, "message": "Invalid token"}
    assert orphan.status_code == 404
