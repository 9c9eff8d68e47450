"""Verification of bearer tokens issued by the hosting platform."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from app.core.config import get_settings
from app.shared.exceptions import AuthenticationException

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a platform-issued JWT."""
    settings = get_settings()
    options = {"verify_aud": settings.auth_jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except JWTError as exc:
        raise AuthenticationException("Invalid token") from exc


def subject_from_claims(claims: dict[str, Any]) -> UUID:
    """Return the platform user id carried in `sub`."""
    subject = claims.get("sub")
    if not subject:
        raise AuthenticationException("Token subject is missing")
    try:
        return UUID(str(subject))
    except ValueError as exc:
        raise AuthenticationException("Token subject is not a valid id") from exc


def display_name_from_claims(claims: dict[str, Any]) -> str:
    """Pick the best available display name from token claims."""
    metadata = claims.get("user_metadata") or {}
    full_name = metadata.get("full_name") if isinstance(metadata, dict) else None
    if full_name and str(full_name).strip():
        return str(full_name).strip()
    email = claims.get("email") or ""
    return str(email).split("@")[0] or "Unbekannt"
