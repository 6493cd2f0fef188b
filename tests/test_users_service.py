"""
Unit tests for the identity store (no HTTP).
We spin up an in-memory SQLite DB, create tables, and verify behavior.
"""

from __future__ import annotations

import time

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from remodel.errors import AuthError, ConflictError, Forbidden, ValidationError
from remodel.models import Role, User
from remodel.services import users as user_store


@pytest.fixture()
def s():
    engine = create_engine("sqlite:///:memory:", echo=False)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


def _ana(s, **overrides):
    data = dict(
        name="Ana Torres",
        username="Ana",
        email="Ana@X.yy",
        password="Secret123!",
        role=Role.user,
    )
    data.update(overrides)
    return user_store.create_user(s, **data)


def test_create_lowercases_and_hashes(s):
    user = _ana(s)
    assert user.username == "ana"
    assert user.email == "ana@x.yy"
    assert user.hashed_password != "Secret123!"
    assert user.hashed_password.startswith("$2")
    assert user.is_active is True


def test_summary_never_has_password(s):
    user = _ana(s)
    summary = user_store.user_summary(user)
    assert "password" not in summary
    assert "hashed_password" not in summary
    assert summary["username"] == "ana"


def test_duplicates_conflict_case_insensitively(s):
    _ana(s)
    with pytest.raises(ConflictError) as ex:
        _ana(s, username="other", email="ANA@x.yy")
    assert ex.value.field == "email"
    with pytest.raises(ConflictError) as ex:
        _ana(s, username="ANA", email="other@x.yy")
    assert ex.value.field == "username"


@pytest.mark.parametrize(
    "overrides",
    [
        {"username": "ab"},
        {"username": " ab "},
        {"name": " A "},
        {"username": "bad name"},
        {"email": "not-an-email"},
        {"email": "ana@"},
        {"name": "A"},
        {"password": "short"},
    ],
)
def test_create_rejects_bad_input(s, overrides):
    with pytest.raises(ValidationError):
        _ana(s, **overrides)


def test_single_letter_tld_is_accepted(s):
    user = _ana(s, email=" Ana@X.y ")
    assert user.email == "ana@x.y"


def test_malformed_email_is_rejected_quickly(s):
    started = time.monotonic()
    with pytest.raises(ValidationError) as ex:
        _ana(s, email="a" * 28 + "!")
    assert ex.value.field == "email"
    assert time.monotonic() - started < 2.0


def test_username_is_trimmed_before_length_check(s):
    with pytest.raises(ValidationError) as ex:
        _ana(s, username=" ab ")
    assert ex.value.field == "username"
    assert s.exec(select(User)).all() == []


def test_validation_message_does_not_echo_password(s):
    with pytest.raises(ValidationError) as ex:
        _ana(s, password="tiny")
    assert "tiny" not in ex.value.message


def test_lookup_by_email_or_username(s):
    user = _ana(s)
    assert user_store.find_by_identifier(s, "ANA").id == user.id
    assert user_store.find_by_identifier(s, " ana@x.yy ").id == user.id
    assert user_store.find_by_identifier(s, "nobody") is None
    assert user_store.find_by_identifier(s, "") is None


def test_verify_credentials(s):
    _ana(s)
    summary = user_store.verify_credentials(s, "ANA", "Secret123!")
    assert summary["username"] == "ana"
    assert set(summary) == {"id", "email", "username", "name", "role"}

    with pytest.raises(AuthError):
        user_store.verify_credentials(s, "ana", "wrong-password")
    with pytest.raises(AuthError):
        user_store.verify_credentials(s, "ghost", "Secret123!")


def test_verify_inactive_is_forbidden(s):
    user = _ana(s)
    user.is_active = False
    s.add(user)
    s.commit()
    with pytest.raises(Forbidden):
        user_store.verify_credentials(s, "ana", "Secret123!")


def test_record_last_login_idempotent_and_silent(s):
    user = _ana(s)
    assert user.last_login is None
    user_store.record_last_login(s, user.id)
    first = s.get(User, user.id).last_login
    assert first is not None
    user_store.record_last_login(s, user.id)
    assert s.get(User, user.id).last_login >= first
    # unknown id: no error
    user_store.record_last_login(s, "does-not-exist")


def test_ensure_admin_only_once(s):
    created = user_store.ensure_admin(
        s, name="Boot Admin", username="root", email="root@x.yy", password="RootPass123"
    )
    assert created is not None and created.role == Role.admin
    again = user_store.ensure_admin(
        s, name="Boot Admin", username="root", email="root@x.yy", password="RootPass123"
    )
    assert again is None
