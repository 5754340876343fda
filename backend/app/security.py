"""Shared-secret checks for webhook and internal callers."""

from __future__ import annotations

import hmac
import secrets

from fastapi import Header, HTTPException, status

from .config import settings


def tokens_match(expected: str | None, provided: str | None) -> bool:
    """Exact match in constant time; a missing stored secret never matches."""
    if not expected or provided is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def generate_webhook_token() -> str:
    return secrets.token_urlsafe(32)  # 43 chars base64url


def require_internal_api_key(
    x_internal_api_key: str | None = Header(default=None, alias="X-Internal-Api-Key"),
) -> None:
    """Gate for business-layer callers (end-user auth lives in the main application)."""
    if not tokens_match(settings.INTERNAL_API_KEY, x_internal_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal API key",
        )
