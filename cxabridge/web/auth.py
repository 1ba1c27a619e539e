"""
HTTP Basic authentication for the bridge API.

Authentication is optional: when no username is configured every request
is allowed through.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from cxabridge.config import AuthConfig

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


def _matches(candidate: str, expected: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def check_credentials(auth: AuthConfig, credentials: HTTPBasicCredentials | None) -> bool:
    """Return True if the credentials satisfy the auth config."""
    if not auth.enabled:
        return True
    if credentials is None:
        return False
    # Evaluate both so the timing does not reveal which part was wrong
    user_ok = _matches(credentials.username, auth.username)
    pwd_ok = _matches(credentials.password, auth.password)
    return user_ok and pwd_ok


async def require_auth(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> None:
    """
    FastAPI dependency enforcing the configured credentials.

    Raises:
        HTTPException: 401 with a Basic challenge if the check fails.
    """
    auth: AuthConfig | None = getattr(request.app.state, "auth", None)
    if auth is None or check_credentials(auth, credentials):
        return

    client = request.client.host if request.client else "unknown"
    logger.warning("Rejected unauthenticated request from %s to %s", client, request.url.path)
    raise HTTPException(
        status_code=401,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Basic"},
    )
