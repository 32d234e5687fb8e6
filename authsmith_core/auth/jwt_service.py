"""
JWT service for access token issuance and validation.

Access tokens are signed with RS256 using a PEM private key read from disk
on every issuance; verification and the JWKS document use the matching
public key.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TypedDict

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from loguru import logger

from authsmith_core.auth.exceptions import KeyFileMissingError, KeySourceNotConfiguredError
from authsmith_core.config import settings
from authsmith_core.domain.entities import Tenant, User


class TokenPayload(TypedDict):
    """Decoded JWT payload."""

    sub: str  # user_id
    name: str
    email: str
    app: str  # tenant key
    roles: list[str]
    permissions: list[str]
    iat: int
    exp: int


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8 or 1, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JwtService:
    """Service for JWT token generation and validation."""

    ALGORITHM = "RS256"
    KEY_ID = "authsmith-key-1"

    def __init__(
        self,
        private_key_path: str | None = None,
        public_key_path: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
        expiration_minutes: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the JWT service.

        Args:
            private_key_path: PEM private key path. Defaults to settings.JWT_PRIVATE_KEY_PATH.
            public_key_path: PEM public key path. Defaults to settings.JWT_PUBLIC_KEY_PATH.
            issuer: Token issuer. Defaults to settings.JWT_ISSUER.
            audience: Token audience. Defaults to settings.JWT_AUDIENCE.
            expiration_minutes: Access token lifetime. Defaults to settings.JWT_EXPIRATION_MINUTES.
            clock: Returns the current UTC time.
        """
        self.private_key_path = settings.JWT_PRIVATE_KEY_PATH if private_key_path is None else private_key_path
        self.public_key_path = settings.JWT_PUBLIC_KEY_PATH if public_key_path is None else public_key_path
        self.issuer = settings.JWT_ISSUER if issuer is None else issuer
        self.audience = settings.JWT_AUDIENCE if audience is None else audience
        self.expiration_minutes = expiration_minutes or settings.JWT_EXPIRATION_MINUTES
        self.clock = clock

    @staticmethod
    def _read_pem(path: str, key_kind: str) -> bytes:
        if not path or not path.strip():
            raise KeySourceNotConfiguredError(key_kind)
        key_file = Path(path)
        if not key_file.is_file():
            raise KeyFileMissingError(path)
        return key_file.read_bytes()

    async def _load_private_key(self) -> RSAPrivateKey:
        pem = await asyncio.to_thread(self._read_pem, self.private_key_path, "private")
        key = serialization.load_pem_private_key(pem, password=None)
        if not isinstance(key, RSAPrivateKey):
            raise TypeError("JWT private key is not an RSA key")
        return key

    async def _load_public_key(self) -> RSAPublicKey:
        pem = await asyncio.to_thread(self._read_pem, self.public_key_path, "public")
        key = serialization.load_pem_public_key(pem)
        if not isinstance(key, RSAPublicKey):
            raise TypeError("JWT public key is not an RSA key")
        return key

    def build_claims(
        self,
        user: User,
        tenant: Tenant,
        roles: Iterable[str],
        permissions: Iterable[str],
    ) -> dict:
        """Build the claim set for an access token.

        Args:
            user: The authenticated user.
            tenant: The tenant the token is issued for.
            roles: Role names the user holds in the tenant.
            permissions: Permission codes the user holds in the tenant.

        Returns:
            Claims dict ready for signing.
        """
        now = self.clock()
        return {
            "sub": user.id,
            "name": user.user_name,
            "preferred_username": user.user_name,
            "email": user.email,
            "app": tenant.key,
            "roles": sorted(roles),
            "permissions": sorted(permissions),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.expiration_minutes)).timestamp()),
        }

    async def issue_access_token(
        self,
        user: User,
        tenant: Tenant,
        roles: Iterable[str],
        permissions: Iterable[str],
    ) -> str:
        """Create a short-lived RS256 access token.

        Args:
            user: The authenticated user.
            tenant: The tenant the token is issued for.
            roles: Role names the user holds in the tenant.
            permissions: Permission codes the user holds in the tenant.

        Returns:
            Encoded JWT string.

        Raises:
            KeySourceNotConfiguredError: No private key path configured.
            KeyFileMissingError: The configured private key file does not exist.
        """
        claims = self.build_claims(user, tenant, roles, permissions)
        key = await self._load_private_key()
        return jwt.encode(claims, key, algorithm=self.ALGORITHM, headers={"kid": self.KEY_ID})

    async def verify_access_token(self, token: str) -> TokenPayload | None:
        """Verify and decode an access token.

        Args:
            token: The JWT string.

        Returns:
            Decoded payload if valid, None otherwise.

        Raises:
            KeySourceNotConfiguredError: No public key path configured.
            KeyFileMissingError: The configured public key file does not exist.
        """
        key = await self._load_public_key()
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.ALGORITHM],
                audience=self.audience or None,
                issuer=self.issuer or None,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Access token expired")
            return None
        except jwt.InvalidTokenError:
            return None

        return TokenPayload(
            sub=payload["sub"],
            name=payload.get("name", ""),
            email=payload.get("email", ""),
            app=payload.get("app", ""),
            roles=list(payload.get("roles", [])),
            permissions=list(payload.get("permissions", [])),
            iat=payload["iat"],
            exp=payload["exp"],
        )

    async def jwks(self) -> dict:
        """Public key as a JSON Web Key Set.

        Returns:
            {"keys": [{kty, use, kid, alg, n, e}]}
        """
        numbers = (await self._load_public_key()).public_numbers()
        return {
            "keys": [
                {
                    "kty": "RSA",
                    "use": "sig",
                    "kid": self.KEY_ID,
                    "alg": self.ALGORITHM,
                    "n": _b64url_uint(numbers.n),
                    "e": _b64url_uint(numbers.e),
                }
            ]
        }
