"""Admin API protection: per-IP rate limits and the X-API-Key check."""

import logging
import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from dreamleague.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

IS_PRODUCTION = os.getenv("ENVIRONMENT", "").lower() == "production"

# Per-IP limits, declared per endpoint with @limiter.limit
limiter = Limiter(key_func=get_remote_address)

api_key_header = APIKeyHeader(name=settings.API_KEY_HEADER, auto_error=False)


async def verify_api_key(api_key: Optional[str] = Security(api_key_header)) -> bool:
    """
    Gate for every jornada/betting admin endpoint.

    Without a configured API_KEY, development lets requests through and
    production refuses them all (503).
    """
    if not settings.API_KEY:
        if IS_PRODUCTION:
            logger.error("[SECURITY] API_KEY missing in production, admin endpoints disabled")
            raise HTTPException(status_code=503, detail="Admin access disabled: API_KEY not configured")
        return True

    if not api_key:
        raise HTTPException(status_code=401, detail=f"Missing {settings.API_KEY_HEADER} header")

    if not secrets.compare_digest(api_key, settings.API_KEY):
        logger.warning("[SECURITY] Rejected admin request with an invalid API key")
        raise HTTPException(status_code=403, detail="Invalid API key")

    return True
