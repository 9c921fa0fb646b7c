import logging
from urllib.parse import urlparse

import httpx

from ipranges.errors import FetchFailure

logger = logging.getLogger(__name__)

ALLOWED_SOURCE_HOST = "ip-ranges.amazonaws.com"
TIMEOUT = httpx.Timeout(connect=10.0, read=60.0, write=10.0, pool=5.0)
MAX_RESPONSE_BYTES = 20 * 1024 * 1024  # 20 MB safety ceiling


def _validate_source_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme != "https":
        raise ValueError(f"Expected HTTPS URL, got scheme: {parsed.scheme!r}")
    if parsed.hostname != ALLOWED_SOURCE_HOST:
        raise ValueError(f"Unexpected source host: {parsed.hostname!r}")
    return url


async def fetch_ip_ranges(url: str) -> bytes:
    url = _validate_source_url(url)
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=TIMEOUT,
        max_redirects=3,
    ) as client:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Failed to fetch {url}: {exc}") from exc
        if len(response.content) > MAX_RESPONSE_BYTES:
            raise FetchFailure("IP ranges response too large")
        logger.info("Fetched IP ranges document: %d bytes", len(response.content))
        return response.content
