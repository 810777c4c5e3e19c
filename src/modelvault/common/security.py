"""Caller identity and service-key dependencies.

User identity is established upstream by the identity provider, which
forwards the authenticated user id in ``X-Modelvault-User``. Modelvault
trusts that value and never re-validates it.
"""

import hmac

from fastapi import Header, HTTPException


async def require_user(
    x_modelvault_user: str | None = Header(None, alias="X-Modelvault-User"),
) -> str:
    """FastAPI dependency returning the authenticated user id."""
    if not x_modelvault_user or not x_modelvault_user.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_modelvault_user.strip()


async def require_api_key(
    x_modelvault_api_key: str = Header(..., alias="X-Modelvault-Api-Key"),
) -> str:
    """FastAPI dependency that validates the service API key from header."""
    from modelvault.common.config import get_settings

    settings = get_settings()
    if not hmac.compare_digest(x_modelvault_api_key.encode(), settings.api_key.encode()):
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_modelvault_api_key
