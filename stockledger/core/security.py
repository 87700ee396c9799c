"""Caller authentication for the mutating ledger endpoints.

Two credentials are accepted: a shared API key (``API_KEYS``) or a bearer JWT
signed with ``JWT_SECRET``. ``JWT_REQUIRED`` turns API keys off. When neither
keys nor a secret are configured the service runs open, which is how local
development and the test suite use it.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Optional

import jwt
from fastapi import HTTPException, status

from stockledger.config import Settings, get_settings


@dataclass(frozen=True)
class Principal:
    method: str
    subject: Optional[str] = None
    claims: dict = field(default_factory=dict)


def configured_api_keys(settings: Settings) -> frozenset[str]:
    if not settings.API_KEYS:
        return frozenset()
    return frozenset(part.strip() for part in settings.API_KEYS.split(",") if part.strip())


def _match_api_key(candidate: str, keys: frozenset[str]) -> bool:
    matched = False
    for key in keys:
        matched |= hmac.compare_digest(candidate.encode(), key.encode())
    return matched


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str, settings: Settings) -> dict:
    if not settings.JWT_SECRET:
        raise _unauthorized("JWT auth is not configured")
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_aud": bool(settings.JWT_AUDIENCE)},
        )
    except jwt.PyJWTError as exc:
        raise _unauthorized("Invalid JWT") from exc


def authenticate_request(
    api_key: Optional[str],
    authorization: Optional[str],
    settings: Optional[Settings] = None,
) -> Optional[Principal]:
    settings = settings or get_settings()
    keys = configured_api_keys(settings)

    if api_key and keys and not settings.JWT_REQUIRED and _match_api_key(api_key, keys):
        return Principal(method="api_key")

    token = _bearer_token(authorization)
    if token:
        claims = decode_token(token, settings)
        return Principal(method="jwt", subject=claims.get("sub"), claims=claims)

    if keys or settings.JWT_SECRET or settings.JWT_REQUIRED:
        raise _unauthorized("Not authenticated")
    return None


__all__ = ["Principal", "authenticate_request", "configured_api_keys", "decode_token"]
