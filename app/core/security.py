import secrets
import logging
from typing import Optional

from fastapi import Cookie, Header, HTTPException, Query, status

from app.core.config import settings

logger = logging.getLogger(__name__)


def is_valid_admin_key(api_key: Optional[str]) -> bool:
    if not api_key or not settings.ADMIN_API_KEY:
        return False
    return secrets.compare_digest(api_key, settings.ADMIN_API_KEY)


def verify_admin_credentials(username: str, password: str) -> bool:
    return secrets.compare_digest(username or "", settings.ADMIN_USERNAME) and \
        secrets.compare_digest(password or "", settings.ADMIN_PASSWORD)


async def require_admin_key(
    api_key_query: Optional[str] = Query(default=None, alias="apiKey"),
    api_key_header: Optional[str] = Header(default=None, alias="x-api-key"),
    api_key_cookie: Optional[str] = Cookie(default=None, alias="apiKey"),
) -> str:
    """
    FastAPI dependency guarding the admin API with the static shared key.
    The key may come from the `apiKey` query param, the `x-api-key` header
    or the `apiKey` cookie.
    """
    api_key = api_key_query or api_key_header or api_key_cookie
    if not is_valid_admin_key(api_key):
        logger.warning("Rejected admin request with missing or invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please provide a valid API key.",
        )
    return api_key
