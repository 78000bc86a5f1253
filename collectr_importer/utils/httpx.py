"""HTTP client helpers for the showcase API and page fetches."""

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.logger import httpx_logger, log_api_request

# Disable verbose httpx logging to prevent spam
logging.getLogger("httpx").setLevel(logging.WARNING)

REQUEST_TIMEOUT = 20.0

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def create_http_client(
    config: ImporterConfig,
    *,
    request_timeout: float = REQUEST_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """AsyncClient carrying the configured header overrides. Caller closes it."""
    limits = httpx.Limits(
        max_keepalive_connections=3, max_connections=10, keepalive_expiry=30.0
    )
    return httpx.AsyncClient(
        headers=config.api_headers(),
        follow_redirects=True,
        http2=transport is None,
        timeout=httpx.Timeout(float(request_timeout)),
        limits=limits,
        trust_env=True,
        max_redirects=10,
        transport=transport,
    )


async def httpx_get(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[dict[str, str]] = None,
    headers: Optional[dict[str, str]] = None,
    *,
    attempts: int = 2,
) -> httpx.Response:
    """
    GET with a short retry on timeouts and dropped connections.

    Non-success responses are returned as-is; the caller decides whether a
    status is fatal. The last transport error is re-raised.
    """
    last_exc: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            req = client.build_request("GET", url, params=params, headers=headers)
            httpx_logger.debug(f"🔍 GET {req.url} (attempt {attempt}/{attempts})")
            return await client.send(req)
        except (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.NetworkError) as e:
            last_exc = e
            httpx_logger.info(
                f"⚠️ Connection error on attempt {attempt} ({type(e).__name__}), retrying..."
            )
            await asyncio.sleep(0.5 * attempt + random.uniform(0.1, 0.5))
    raise last_exc


async def httpx_get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[dict[str, str]] = None,
) -> Optional[Any]:
    """Decoded JSON body, or None for a non-success status or a non-JSON body."""
    log_api_request(httpx_logger, "GET", url, params)
    response = await httpx_get(client, url, params=params)
    if not response.is_success:
        httpx_logger.warning(f"⚠️ {url} answered with status {response.status_code}")
        return None
    try:
        return response.json()
    except ValueError:
        httpx_logger.warning(f"⚠️ {url} returned a non-JSON body")
        return None


async def httpx_get_content(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """Fetch a page as HTML. Returns the response so callers can check the status."""
    log_api_request(httpx_logger, "GET", url)
    return await httpx_get(client, url, headers={"accept": HTML_ACCEPT})
