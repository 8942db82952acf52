"""Unit tests for auth/passwords.py -- bcrypt hashing and verification."""

import pytest

from auth.passwords import PasswordHasher


def test_same_password_hashes_differently(hasher):
    """Fresh salt per call: two hashes of one password never match."""
    assert hasher.hash("secret123") != hasher.hash("secret123")


def test_verify_accepts_correct_password(hasher):
    assert hasher.verify("secret123", hasher.hash("secret123")) is True


def test_verify_rejects_other_password(hasher):
    digest = hasher.hash("secret123")
    assert hasher.verify("secret124", digest) is False
    assert hasher.verify("", digest) is False


def test_hash_is_not_plaintext(hasher):
    digest = hasher.hash("secret123")
    assert "secret123" not in digest
    assert digest.startswith("$2")


def test_work_factor_is_embedded(hasher):
    assert hasher.hash("secret123").split("$")[2] == "04"


def test_malformed_digest_returns_false(hasher):
    assert hasher.verify("secret123", "not-a-bcrypt-hash") is False


def test_dummy_hash_is_cached_and_never_matches_user_input(hasher):
    assert hasher.dummy_hash is hasher.dummy_hash
    assert hasher.verify("secret123", hasher.dummy_hash) is False


@pytest.mark.parametrize("rounds", [3, 32])
def test_rounds_out_of_range_rejected(rounds):
    with pytest.raises(ValueError):
        PasswordHasher(rounds=rounds)


def test_default_rounds_is_twelve():
    assert PasswordHasher().rounds == 12
