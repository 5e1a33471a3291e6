import logging
from functools import lru_cache

import httpx
from fastapi import Depends, HTTPException, Request

from app.config import Settings
from app.services.identity import IdentityProvider

logger = logging.getLogger(__name__)

TOKEN_DELIMITER = "%3A%3A"

_http_client: httpx.AsyncClient | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_http_client(settings: Settings = Depends(get_settings)) -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.upstream_timeout))
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_identity_provider(settings: Settings = Depends(get_settings)) -> IdentityProvider:
    return IdentityProvider(settings)


def select_token(header_value: str) -> str:
    """Pick the upstream credential from an Authorization header value.

    Comma-separated tokens: the first non-empty one wins. A token containing
    ``%3A%3A`` keeps only the part after the first delimiter.
    """
    scheme, _, credentials = header_value.strip().partition(" ")
    token = credentials if scheme.lower() == "bearer" else header_value
    keys = [key.strip() for key in token.split(",") if key.strip()]
    token = keys[0] if keys else ""

    if TOKEN_DELIMITER in token:
        token = token.split(TOKEN_DELIMITER)[1]

    return token


async def get_auth_token(request: Request) -> str:
    """FastAPI dependency: return the upstream token from the Bearer header.

    Raises:
        HTTPException 401 when no token is present.
    """
    auth_header = request.headers.get("Authorization")

    token = select_token(auth_header) if auth_header else ""
    if not token:
        raise HTTPException(status_code=401, detail="Authentication token is required")

    return token
