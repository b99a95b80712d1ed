"""
API key check for the controller's command endpoints.

Controlled by two environment variables, read on every request so an
operator can rotate the key or toggle the check without restarting:
- API_AUTH_ENABLED: "true" turns the check on (default: off)
- API_KEY: the expected X-API-Key value

/health and /controller/status never depend on this.
"""

import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader


def is_auth_enabled() -> bool:
    return os.getenv("API_AUTH_ENABLED", "false").lower() == "true"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,
    description="Controller API key (required when API_AUTH_ENABLED=true)",
)


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> Optional[str]:
    """
    Reject queue and pod group commands that lack a valid X-API-Key.

    Raises:
        HTTPException: 401 if auth is enabled and the key is missing or wrong

    Returns:
        The presented key, or None when auth is disabled
    """
    if not is_auth_enabled():
        return None

    if not api_key:
        raise _unauthorized("Missing API key. Provide X-API-Key header.")

    expected = os.getenv("API_KEY", "")
    # An unset key never matches, even an empty header value
    if not expected or not secrets.compare_digest(api_key, expected):
        raise _unauthorized("Invalid API key")

    return api_key
