"""Unit tests for auth/passwords.py -- bcrypt credential verifier.

Covers:
- hash then verify with the same plaintext succeeds
- verify with any other plaintext fails
- salts differ per hash; cost factor is embedded in the hash
- malformed hashes verify as False instead of raising
"""

import bcrypt
import pytest

from auth.errors import InvalidPassword
from auth.passwords import PasswordHasher


@pytest.mark.parametrize("plain", ["Secret123!", "a", "pässwörd-ünïcode", " spaced out "])
def test_hash_then_verify_roundtrip(hasher: PasswordHasher, plain: str) -> None:
    hashed = hasher.hash(plain)
    assert hasher.verify(plain, hashed) is True


@pytest.mark.parametrize("other", ["secret123!", "Secret123", "Secret123!!", "", "Secret123! "])
def test_verify_rejects_other_plaintext(hasher: PasswordHasher, other: str) -> None:
    hashed = hasher.hash("Secret123!")
    assert hasher.verify(other, hashed) is False


def test_hash_never_contains_plaintext(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("Secret123!")
    assert "Secret123!" not in hashed
    assert hashed.startswith("$2")


def test_same_password_hashes_differently(hasher: PasswordHasher) -> None:
    """Fresh salt per call: two hashes of one password must differ but both verify."""
    first = hasher.hash("Secret123!")
    second = hasher.hash("Secret123!")
    assert first != second
    assert hasher.verify("Secret123!", first)
    assert hasher.verify("Secret123!", second)


def test_cost_factor_is_embedded_in_hash() -> None:
    hashed = PasswordHasher(rounds=5).hash("Secret123!")
    assert hashed.split("$")[2] == "05"


def test_verify_accepts_hash_from_different_cost(hasher: PasswordHasher) -> None:
    """Hashes created under an older cost setting keep verifying after a config change."""
    legacy = bcrypt.hashpw(b"Secret123!", bcrypt.gensalt(rounds=6)).decode()
    assert hasher.verify("Secret123!", legacy)


@pytest.mark.parametrize("bad_hash", ["", "not-a-hash", "$2b$04$tooshort"])
def test_verify_malformed_hash_returns_false(hasher: PasswordHasher, bad_hash: str) -> None:
    assert hasher.verify("Secret123!", bad_hash) is False


def test_dummy_verify_does_not_raise(hasher: PasswordHasher) -> None:
    assert hasher.dummy_verify("anything") is None


@pytest.mark.parametrize("rounds", [0, 3, 32])
def test_rounds_out_of_range_rejected(rounds: int) -> None:
    with pytest.raises(ValueError):
        PasswordHasher(rounds=rounds)


def test_hash_rejects_password_over_72_bytes(hasher: PasswordHasher) -> None:
    with pytest.raises(InvalidPassword):
        hasher.hash("A1" + "x" * 71)


def test_hash_accepts_exactly_72_bytes(hasher: PasswordHasher) -> None:
    plain = "A1" + "x" * 70
    assert hasher.verify(plain, hasher.hash(plain))


def test_hash_counts_bytes_not_characters(hasher: PasswordHasher) -> None:
    """37 two-byte characters are 74 bytes."""
    with pytest.raises(InvalidPassword):
        hasher.hash("é" * 37)


def test_verify_rejects_password_sharing_first_72_bytes(hasher: PasswordHasher) -> None:
    stored = hasher.hash("A1" + "x" * 70)
    assert hasher.verify("A1" + "x" * 70 + "extra", stored) is False
