"""Tests pour la gestion des comptes (inscription, connexion, réinitialisation)."""

import pytest

from petcare.domain.accounts import AccountService
from petcare.domain.auth import create_access_token, decode_token
from petcare.domain.errors import (
    EmailInUseError,
    InvalidTokenError,
    UserNotFoundError,
    WeakPasswordError,
    WrongPasswordError,
)

PASSWORD = "secret123"


@pytest.fixture
def accounts(store, settings) -> AccountService:
    return AccountService(store, settings)


def test_signup_creates_non_premium_profile(accounts, store) -> None:
    """Le profil créé n'est pas premium et l'email est normalisé."""
    profile = accounts.signup(" Ana@Test.IO ", PASSWORD, "Ana", phone="+56 9 1234")

    assert profile.email == "ana@test.io"
    assert profile.is_premium is False
    assert profile.premium_expiry is None
    stored = store.get("users", profile.id)
    assert stored["passwordHash"] != PASSWORD
    assert stored["phone"] == "+56 9 1234"


def test_signup_rejects_duplicate_email(accounts) -> None:
    accounts.signup("ana@test.io", PASSWORD, "Ana")
    with pytest.raises(EmailInUseError):
        accounts.signup("ANA@test.io", PASSWORD, "Other")


def test_signup_rejects_weak_password(accounts) -> None:
    with pytest.raises(WeakPasswordError):
        accounts.signup("ana@test.io", "123", "Ana")


def test_authenticate(accounts) -> None:
    created = accounts.signup("ana@test.io", PASSWORD, "Ana")

    assert accounts.authenticate("ana@test.io", PASSWORD).id == created.id
    with pytest.raises(WrongPasswordError):
        accounts.authenticate("ana@test.io", "bad-password")
    with pytest.raises(UserNotFoundError):
        accounts.authenticate("nobody@test.io", PASSWORD)


def test_access_token_carries_session(accounts, settings) -> None:
    token = accounts.issue_access_token("u1", "s1")
    data = decode_token(token, settings.JWT_SECRET, settings.JWT_ALG)
    assert (data.sub, data.sid, data.purpose) == ("u1", "s1", "access")
    assert decode_token(token, "other-secret", settings.JWT_ALG) is None


def test_update_profile_only_touches_editable_fields(accounts) -> None:
    created = accounts.signup("ana@test.io", PASSWORD, "Ana")
    updated = accounts.update_profile(
        created.id, {"name": "Ana Maria", "address": "Maipú", "is_premium": True}
    )
    assert updated.name == "Ana Maria"
    assert updated.address == "Maipú"
    assert updated.is_premium is False
    assert updated.email == "ana@test.io"


def test_update_profile_unknown_user(accounts) -> None:
    with pytest.raises(UserNotFoundError):
        accounts.update_profile("missing", {"name": "X"})


def test_password_reset_flow(accounts) -> None:
    """Le token de réinitialisation ne sert qu'une fois."""
    accounts.signup("ana@test.io", PASSWORD, "Ana")
    token = accounts.request_password_reset("ana@test.io")

    accounts.reset_password(token, "new-secret")
    assert accounts.authenticate("ana@test.io", "new-secret")
    with pytest.raises(InvalidTokenError):
        accounts.reset_password(token, "third-secret")


def test_password_reset_rejects_access_token(accounts, settings) -> None:
    created = accounts.signup("ana@test.io", PASSWORD, "Ana")
    access = accounts.issue_access_token(created.id, "s1")
    with pytest.raises(InvalidTokenError):
        accounts.reset_password(access, "new-secret")

    expired = create_access_token(
        settings.JWT_SECRET,
        settings.JWT_ALG,
        -1,
        {"sub": created.id, "purpose": "password_reset"},
    )
    with pytest.raises(InvalidTokenError):
        accounts.reset_password(expired, "new-secret")


def test_password_reset_unknown_email(accounts) -> None:
    with pytest.raises(UserNotFoundError):
        accounts.request_password_reset("nobody@test.io")
