"""Unit tests for PasswordHasher."""

from __future__ import annotations

import pytest

from credvault.security import HashingError, PasswordHasher

FAST = "pbkdf2:sha256:1000"


class TestPasswordHasher:
    def test_hash_is_salted_and_verifies(self):
        hasher = PasswordHasher(method=FAST)
        first = hasher.hash("s3cret!")
        second = hasher.hash("s3cret!")

        assert first != second
        assert first.startswith(FAST + "$")
        assert hasher.verify("s3cret!", first)
        assert not hasher.verify("wrong", first)

    def test_pepper_is_required_to_verify(self):
        peppered = PasswordHasher(method=FAST, pepper="pepper")
        plain = PasswordHasher(method=FAST)
        stored = peppered.hash("s3cret!")

        assert peppered.verify("s3cret!", stored)
        assert not plain.verify("s3cret!", stored)

    @pytest.mark.parametrize("stored", ["", "not-a-hash", "unknown$salt$deadbeef"])
    def test_malformed_hash_never_verifies(self, stored):
        assert PasswordHasher(method=FAST).verify("anything", stored) is False

    def test_needs_rehash_compares_method(self):
        legacy = PasswordHasher(method=FAST).hash("pw")
        current = PasswordHasher(method="pbkdf2:sha256:2000")

        assert current.needs_rehash(legacy)
        assert not current.needs_rehash(current.hash("pw"))
        assert current.needs_rehash("garbage")

    def test_unknown_method_raises_hashing_error(self):
        with pytest.raises(HashingError):
            PasswordHasher(method="nope:1").hash("pw")

    def test_decoy_verify_always_fails_and_reuses_its_hash(self):
        hasher = PasswordHasher(method=FAST)

        assert hasher.verify_decoy("anything") is False
        decoy = hasher._decoy_hash
        assert decoy.startswith(FAST + "$")
        assert hasher.verify_decoy("other") is False
        assert hasher._decoy_hash == decoy
