"""
Well-known discovery routes.

Publishes the token-signing public key so relying parties can verify
access tokens without sharing secrets.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.authorization.factory import get_jwt_service
from authsmith_core.auth.jwt_service import JwtService

router = APIRouter(prefix="/.well-known", tags=["Discovery"])


@router.get("/jwks.json")
async def jwks(jwt_service: JwtService = Depends(get_jwt_service)):
    """JSON Web Key Set for access token verification."""
    return await jwt_service.jwks()
