# app/db/http.py
import logging

import httpx
from app.core.config import get_settings

logger = logging.getLogger(__name__)

_client: httpx.AsyncClient | None = None


async def connect():
    """One pooled client for the scoring service, shared by all requests."""
    global _client
    settings = get_settings()
    _client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.RECO_TIMEOUT_S),
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
        headers={"User-Agent": f"{settings.APP_NAME}/reco-gateway"},
    )
    logger.info("HTTP client ready timeout=%.1fs", settings.RECO_TIMEOUT_S)


async def disconnect():
    global _client
    if _client is not None:
        await _client.aclose()
    _client = None


def get_http_client() -> httpx.AsyncClient:
    assert _client is not None, "HTTP client not initialized"
    return _client
