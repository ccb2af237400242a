# puphax/infra/api/security.py
import hmac
import logging
import os

from fastapi import Depends, HTTPException, status
from fastapi.security.api_key import APIKeyHeader

log = logging.getLogger("puphax.api")

API_KEY_NAME = "X-Api-Key"
_api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

REQUIRE_API_KEY = os.getenv("REQUIRE_API_KEY", "1") == "1"
# both accept a comma-separated list
SERVICE_API_KEY = os.getenv("SERVICE_API_KEY", "")
ADMIN_API_KEY = os.getenv("PUPHAX_ADMIN_API_KEY", "")


def _keys(raw: str) -> list[str]:
    return [k.strip() for k in (raw or "").split(",") if k.strip()]


def _matches(api_key: str | None, raw: str) -> bool:
    if not api_key:
        return False
    given = api_key.encode("utf-8")
    return any(hmac.compare_digest(given, k.encode("utf-8")) for k in _keys(raw))


async def require_api_key(api_key: str = Depends(_api_key_header)):
    if not REQUIRE_API_KEY:
        return
    if not _keys(SERVICE_API_KEY):
        log.warning("Auth fail: SERVICE_API_KEY not configured")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service key not configured")
    if not _matches(api_key, SERVICE_API_KEY):
        log.warning("Auth fail: missing or invalid X-Api-Key")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


async def require_admin_key(api_key: str = Depends(_api_key_header)):
    """Catalog maintenance. Without PUPHAX_ADMIN_API_KEY the service key(s) apply."""
    if not REQUIRE_API_KEY:
        return
    raw = ADMIN_API_KEY or SERVICE_API_KEY
    if not _keys(raw):
        log.warning("Auth fail: no admin or service key configured")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin key not configured")
    if not _matches(api_key, raw):
        log.warning("Admin auth fail on catalog endpoint")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin key required")
