"""Unit tests for auth/store.py -- UserStore queries and the unique email constraint."""

import pytest

from auth.errors import DuplicateEmailError


def test_create_assigns_id_and_timestamp(store):
    user = store.create_user("Jane Doe", "jane@test.com", "$2b$04$hash")
    assert user.id is not None
    assert user.created_at
    assert user.password_hash is None


def test_ids_are_unique(store):
    a = store.create_user("Jane Doe", "jane@test.com", "h")
    b = store.create_user("John Doe", "john@test.com", "h")
    assert a.id != b.id


def test_duplicate_email_raises_and_leaves_store_unchanged(store):
    store.create_user("Jane Doe", "jane@test.com", "h1")
    with pytest.raises(DuplicateEmailError):
        store.create_user("Other Name", "jane@test.com", "h2")
    assert store.count_users() == 1
    assert store.get_credentials("jane@test.com").name == "Jane Doe"


def test_get_credentials_includes_hash(store):
    store.create_user("Jane Doe", "jane@test.com", "the-hash")
    user = store.get_credentials("jane@test.com")
    assert user.password_hash == "the-hash"


def test_get_credentials_miss(store):
    assert store.get_credentials("nobody@test.com") is None


def test_email_exists(store):
    store.create_user("Jane Doe", "jane@test.com", "h")
    assert store.email_exists("jane@test.com")
    assert not store.email_exists("john@test.com")


def test_profile_projection_has_no_hash(store):
    user = store.create_user("Jane Doe", "jane@test.com", "the-hash")
    profile = store.get_profile(user.id)
    data = profile.to_dict()
    assert data == {"id": user.id, "name": "Jane Doe", "email": "jane@test.com", "createdAt": user.created_at}
    assert not hasattr(profile, "password_hash")


def test_profile_miss(store):
    assert store.get_profile(9999) is None


def test_user_repr_hides_hash(store):
    store.create_user("Jane Doe", "jane@test.com", "the-hash")
    assert "the-hash" not in repr(store.get_credentials("jane@test.com"))


def test_ping(store):
    assert store.ping() is True
