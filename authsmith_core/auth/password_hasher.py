"""
Argon2id hasher for passwords and API keys.

Produces PHC-style strings of the form::

    $argon2id$v=19$m=65536,t=3,p=4$<salt>$<hash>

so verification needs no external parameter lookup. Salt and hash are
standard base64 (padded on output, padding optional on input).
"""

from __future__ import annotations

import base64
import hmac
import re
import secrets
from dataclasses import dataclass

from argon2.low_level import Type, hash_secret_raw

from authsmith_core.runtime.errors import InputValidationError

ALGORITHM = "argon2id"
VERSION = 19

_B64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_PARAMS_PATTERN = re.compile(r"^m=(\d{1,10}),t=(\d{1,10}),p=(\d{1,3})$")

# Bounds on parameters accepted from a stored string
_MAX_MEMORY_KIB = 4 * 1024 * 1024
_MAX_ITERATIONS = 64
_MIN_SALT_BYTES = 8
_MIN_HASH_BYTES = 16


@dataclass(frozen=True)
class EncodedHash:
    """Parsed components of a PHC-style Argon2id string."""

    memory_cost: int
    time_cost: int
    parallelism: int
    salt: bytes
    digest: bytes


def _b64decode(value: str) -> bytes | None:
    if not _B64_PATTERN.match(value):
        return None
    stripped = value.rstrip("=")
    if len(stripped) % 4 == 1:
        return None
    return base64.b64decode(stripped + "=" * (-len(stripped) % 4))


def parse_encoded(encoded: str) -> EncodedHash | None:
    """Parse a PHC-style Argon2id string.

    Args:
        encoded: The stored hash string.

    Returns:
        The parsed components, or None if the string is not a well-formed
        Argon2id v19 hash with sane parameters.
    """
    if not encoded:
        return None

    parts = encoded.split("$")
    if len(parts) != 6 or parts[0] != "" or parts[1] != ALGORITHM:
        return None
    if parts[2] != f"v={VERSION}":
        return None

    params = _PARAMS_PATTERN.match(parts[3])
    if not params:
        return None
    memory_cost, time_cost, parallelism = (int(g) for g in params.groups())
    if not 1 <= parallelism <= 255 or not 1 <= time_cost <= _MAX_ITERATIONS:
        return None
    if not 8 * parallelism <= memory_cost <= _MAX_MEMORY_KIB:
        return None

    salt = _b64decode(parts[4])
    digest = _b64decode(parts[5])
    if salt is None or digest is None:
        return None
    if len(salt) < _MIN_SALT_BYTES or len(digest) < _MIN_HASH_BYTES:
        return None

    return EncodedHash(memory_cost, time_cost, parallelism, salt, digest)


class Argon2Hasher:
    """One-way hashing and verification of secrets.

    Used for both user passwords and tenant API keys with the same
    parameters.
    """

    SALT_SIZE = 16  # 128 bits
    MEMORY_COST = 65536  # KiB, 64 MiB
    TIME_COST = 3
    PARALLELISM = 4
    HASH_LENGTH = 32  # 256 bits

    def __init__(
        self,
        memory_cost: int = MEMORY_COST,
        time_cost: int = TIME_COST,
        parallelism: int = PARALLELISM,
    ):
        """Initialize the hasher.

        Args:
            memory_cost: Memory in KiB used for new hashes.
            time_cost: Iterations used for new hashes.
            parallelism: Lanes used for new hashes.
        """
        self.memory_cost = memory_cost
        self.time_cost = time_cost
        self.parallelism = parallelism

    @staticmethod
    def _derive(secret: str, salt: bytes, memory_cost: int, time_cost: int, parallelism: int, length: int) -> bytes:
        return hash_secret_raw(
            secret=secret.encode("utf-8"),
            salt=salt,
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=length,
            type=Type.ID,
            version=VERSION,
        )

    def hash(self, secret: str) -> str:
        """Hash a secret with a fresh random salt.

        Args:
            secret: Password or API key in plain text.

        Returns:
            PHC-style encoded string.

        Raises:
            InputValidationError: If the secret is empty or whitespace only.
        """
        if not secret or not secret.strip():
            raise InputValidationError("Secret cannot be empty.")

        salt = secrets.token_bytes(self.SALT_SIZE)
        digest = self._derive(
            secret, salt, self.memory_cost, self.time_cost, self.parallelism, self.HASH_LENGTH
        )

        salt_b64 = base64.b64encode(salt).decode("ascii")
        hash_b64 = base64.b64encode(digest).decode("ascii")
        return (
            f"${ALGORITHM}$v={VERSION}"
            f"$m={self.memory_cost},t={self.time_cost},p={self.parallelism}"
            f"${salt_b64}${hash_b64}"
        )

    def verify(self, secret: str, encoded: str) -> bool:
        """Verify a secret against a stored hash.

        Malformed hashes verify as False, indistinguishable from a wrong
        secret.

        Args:
            secret: Candidate password or API key.
            encoded: Stored PHC-style string.

        Returns:
            True if the secret matches.
        """
        if not secret or not secret.strip():
            return False

        parsed = parse_encoded(encoded)
        if parsed is None:
            return False

        computed = self._derive(
            secret,
            parsed.salt,
            parsed.memory_cost,
            parsed.time_cost,
            parsed.parallelism,
            len(parsed.digest),
        )
        return hmac.compare_digest(computed, parsed.digest)

    def needs_rehash(self, encoded: str) -> bool:
        """Whether a stored hash was produced with different parameters than this hasher's."""
        parsed = parse_encoded(encoded)
        if parsed is None:
            return True
        return (
            parsed.memory_cost != self.memory_cost
            or parsed.time_cost != self.time_cost
            or parsed.parallelism != self.parallelism
            or len(parsed.digest) != self.HASH_LENGTH
        )
