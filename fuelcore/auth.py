"""Shared-key guard for the progression routes."""

import secrets

from fastapi import HTTPException, Header

from fuelcore.config import settings


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept the configured ``api_key`` from X-API-Key or a Bearer token.

    Open when no key is configured; otherwise a missing or different key is a 401.
    """
    expected = settings.api_key
    if expected is None:
        return ""

    presented = _presented_key(x_api_key, authorization)
    if presented is None or not secrets.compare_digest(presented.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return presented
