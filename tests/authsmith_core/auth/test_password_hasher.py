"""Unit tests for the Argon2id hasher."""

from __future__ import annotations

import base64

import pytest

from authsmith_core.auth.password_hasher import Argon2Hasher, parse_encoded
from authsmith_core.runtime.errors import InputValidationError


@pytest.fixture
def hasher():
    """Hasher with small parameters so tests stay fast."""
    return Argon2Hasher(memory_cost=1024, time_cost=1, parallelism=1)


class TestHash:
    """Tests for hash()."""

    def test_hash_uses_phc_format(self, hasher):
        """Encoded hash carries algorithm, version and parameters."""
        encoded = hasher.hash("correct horse")

        parts = encoded.split("$")
        assert parts[1] == "argon2id"
        assert parts[2] == "v=19"
        assert parts[3] == "m=1024,t=1,p=1"
        assert len(base64.b64decode(parts[4])) == 16
        assert len(base64.b64decode(parts[5])) == 32

    def test_default_parameters(self):
        """Default hasher uses 64 MiB, 3 iterations, 4 lanes."""
        hasher = Argon2Hasher()

        assert (hasher.memory_cost, hasher.time_cost, hasher.parallelism) == (65536, 3, 4)

    def test_salt_is_fresh_per_call(self, hasher):
        """Hashing the same secret twice yields different strings."""
        assert hasher.hash("same secret") != hasher.hash("same secret")

    @pytest.mark.parametrize("secret", ["", "   ", "\t\n"])
    def test_empty_secret_rejected(self, hasher, secret):
        """Empty or whitespace-only secrets raise InputValidationError."""
        with pytest.raises(InputValidationError) as exc_info:
            hasher.hash(secret)

        assert exc_info.value.status_code == 400


class TestVerify:
    """Tests for verify()."""

    def test_correct_secret_verifies(self, hasher):
        """The original secret verifies against its hash."""
        encoded = hasher.hash("s3cret-password")

        assert hasher.verify("s3cret-password", encoded) is True

    def test_wrong_secret_fails(self, hasher):
        """A different secret does not verify."""
        encoded = hasher.hash("s3cret-password")

        assert hasher.verify("s3cret-passworD", encoded) is False

    def test_uses_stored_parameters(self, hasher):
        """A hasher with other defaults still verifies older hashes."""
        encoded = hasher.hash("portable")
        other = Argon2Hasher(memory_cost=2048, time_cost=2, parallelism=2)

        assert other.verify("portable", encoded) is True

    def test_unpadded_base64_accepted(self, hasher):
        """Salt and hash segments verify with padding stripped."""
        encoded = hasher.hash("no-padding")
        parts = encoded.split("$")
        parts[4] = parts[4].rstrip("=")
        parts[5] = parts[5].rstrip("=")

        assert hasher.verify("no-padding", "$".join(parts)) is True

    @pytest.mark.parametrize(
        "encoded",
        [
            "",
            "not-a-hash",
            "$argon2i$v=19$m=1024,t=1,p=1$c2FsdHNhbHRzYWx0$aGFzaGhhc2hoYXNoaGFzaA==",
            "$argon2id$v=16$m=1024,t=1,p=1$c2FsdHNhbHRzYWx0$aGFzaGhhc2hoYXNoaGFzaA==",
            "$argon2id$v=19$m=abc,t=1,p=1$c2FsdHNhbHRzYWx0$aGFzaGhhc2hoYXNoaGFzaA==",
            "$argon2id$v=19$m=1024,t=1,p=1$!!!notbase64$aGFzaGhhc2hoYXNoaGFzaA==",
            "$argon2id$v=19$m=1024,t=1,p=1$c2FsdHNhbHRzYWx0",
            "$argon2id$v=19$m=1024,t=1,p=0$c2FsdHNhbHRzYWx0$aGFzaGhhc2hoYXNoaGFzaA==",
        ],
    )
    def test_malformed_hash_returns_false(self, hasher, encoded):
        """Malformed encodings verify as False without raising."""
        assert hasher.verify("anything", encoded) is False

    def test_empty_secret_returns_false(self, hasher):
        """An empty candidate never verifies."""
        encoded = hasher.hash("something")

        assert hasher.verify("", encoded) is False


class TestParseEncoded:
    """Tests for parse_encoded()."""

    def test_parses_components(self, hasher):
        """A fresh hash parses back to its parameters."""
        parsed = parse_encoded(hasher.hash("parse me"))

        assert parsed is not None
        assert (parsed.memory_cost, parsed.time_cost, parsed.parallelism) == (1024, 1, 1)
        assert len(parsed.salt) == 16
        assert len(parsed.digest) == 32

    def test_rejects_absurd_memory(self):
        """Memory cost above the accepted bound is rejected."""
        encoded = "$argon2id$v=19$m=99999999,t=1,p=1$c2FsdHNhbHRzYWx0$aGFzaGhhc2hoYXNoaGFzaA=="

        assert parse_encoded(encoded) is None


class TestNeedsRehash:
    """Tests for needs_rehash()."""

    def test_same_parameters_no_rehash(self, hasher):
        """A hash made with current parameters is up to date."""
        assert hasher.needs_rehash(hasher.hash("fresh")) is False

    def test_weaker_parameters_need_rehash(self, hasher):
        """A hash made with other parameters needs rehashing."""
        assert Argon2Hasher().needs_rehash(hasher.hash("old")) is True
