from datetime import datetime, timedelta, timezone

import pytest

from auth import SessionIssuer
from config import Settings
from errors import ExpiredToken, InvalidToken
from conftest import auth_header, register

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def issuer():
    return SessionIssuer(Settings(secret_key="test-secret"), clock=lambda: NOW)


def test_issue_is_deterministic_for_fixed_clock(issuer):
    assert issuer.issue("abc", "a@example.com") == issuer.issue("abc", "a@example.com")


def test_verify_roundtrip(issuer):
    identity = issuer.verify(issuer.issue("abc", "a@example.com"))
    assert identity.user_id == "abc"
    assert identity.email == "a@example.com"


def test_verify_rejects_other_key(issuer):
    other = SessionIssuer(Settings(secret_key="another-secret"), clock=lambda: NOW)
    with pytest.raises(InvalidToken):
        issuer.verify(other.issue("abc", "a@example.com"))


def test_verify_rejects_garbage(issuer):
    with pytest.raises(InvalidToken):
        issuer.verify("not-a-token")


def test_token_expires_after_seven_days():
    settings = Settings(secret_key="test-secret")
    token = SessionIssuer(settings, clock=lambda: NOW).issue("abc", "a@example.com")
    later = SessionIssuer(settings, clock=lambda: NOW + timedelta(days=7, seconds=1))
    with pytest.raises(ExpiredToken):
        later.verify(token)
    still_valid = SessionIssuer(settings, clock=lambda: NOW + timedelta(days=6, hours=23))
    assert still_valid.verify(token).user_id == "abc"


def _token_issued(settings, days_ago, user):
    issued_at = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return SessionIssuer(settings, clock=lambda: issued_at).issue(user["id"], user["email"])


def test_guard_rejects_token_older_than_seven_days(client, settings):
    user = register(client).json()["data"]["user"]
    token = _token_issued(settings, 8, user)
    response = client.get("/api/orders/my-orders", headers=auth_header(token))
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


def test_guard_accepts_token_within_window(client, settings):
    user = register(client).json()["data"]["user"]
    token = _token_issued(settings, 6, user)
    response = client.get("/api/orders/my-orders", headers=auth_header(token))
    assert response.status_code == 200


def test_guard_requires_bearer_scheme(client, user_token):
    response = client.get("/api/orders/my-orders", headers={"Authorization": f"Token {user_token}"})
    assert response.status_code == 401
    assert response.json()["error"] == "MissingToken"
