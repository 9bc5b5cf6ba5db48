"""FastAPI dependencies for authentication and coordinator access."""

import os
import re

from fastapi import Depends, Header, HTTPException, Request, status

from server.utils import redact_sensitive_headers
from utils.api_key_utils import compute_api_key_hash
from utils.logger import get_logger

logger = get_logger(__name__)

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")


async def get_api_key(request: Request, x_api_key: str | None = Header(None)):
    """Validate API key from X-API-Key header."""
    valid_keys_str = os.getenv("API_KEYS", "")
    redacted_headers = redact_sensitive_headers(dict(request.headers))

    if not valid_keys_str:
        logger.error(
            "API authentication not configured",
            extra={"extra_fields": {"headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication not configured",
        )

    valid_keys = [k.strip() for k in valid_keys_str.split(",") if k.strip()]

    if not x_api_key or x_api_key not in valid_keys:
        logger.warning(
            "API authentication failed",
            extra={"extra_fields": {"headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key"
        )

    return x_api_key


async def get_user_id(
    api_key: str = Depends(get_api_key), x_user_id: str | None = Header(None)
) -> str:
    """
    Resolve the cache namespace for the caller.

    Every namespace lives under the API key's own ``key_<hash>`` prefix. A
    front end may pass its signed-in user as X-User-Id to split that further,
    but can never name another key's namespace.
    """
    key_namespace = "key_" + compute_api_key_hash(api_key)[:16]
    if x_user_id and _USER_ID_RE.match(x_user_id):
        return f"{key_namespace}.{x_user_id}"
    return key_namespace


def get_coordinator():
    """Dependency to get the DeepSearchCoordinator instance (singleton pattern)."""
    from tools.web.factory import create_coordinator

    if not hasattr(get_coordinator, "_instance"):
        get_coordinator._instance = create_coordinator()
    return get_coordinator._instance
