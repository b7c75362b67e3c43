# tests/test_auth.py
from __future__ import annotations

from src.auth import AuthManager


def test_password_hashing():
    hashed = AuthManager.hash_password("testpass123")
    assert hashed != "testpass123"
    assert AuthManager.verify_password("testpass123", hashed)
    assert not AuthManager.verify_password("wrongpass", hashed)


def test_sign_up(session):
    result = AuthManager.sign_up(
        session,
        {"email": "New@Example.com", "password": "password1", "confirm_password": "password1"},
    )
    assert result.success
    assert result.data["email"] == "new@example.com"


def test_sign_up_duplicate_email(session, test_user):
    result = AuthManager.sign_up(
        session,
        {"email": "TEST@example.com", "password": "password1", "confirm_password": "password1"},
    )
    assert result.kind == "conflict"
    assert result.error == "Email already registered."


def test_sign_up_password_mismatch(session):
    result = AuthManager.sign_up(
        session,
        {"email": "a@example.com", "password": "password1", "confirm_password": "password2"},
    )
    assert result.error == "Invalid form data."
    assert result.issues == [{"path": ["confirm_password"], "message": "Passwords do not match."}]


def test_sign_in(session, test_user):
    ok = AuthManager.sign_in(session, {"email": "test@example.com", "password": "testpass123"})
    assert ok.success
    assert ok.data["user_id"] == test_user.id

    bad = AuthManager.sign_in(session, {"email": "test@example.com", "password": "wrongpass"})
    assert bad.kind == "auth"
    assert bad.error == "Invalid credentials."


def test_token_round_trip():
    token = AuthManager.issue_token("secret", "user-1")
    assert AuthManager.resolve_token("secret", token, max_age=60) == "user-1"
    assert AuthManager.resolve_token("other-secret", token, max_age=60) is None
    assert AuthManager.resolve_token("secret", "garbage", max_age=60) is None
