"""
HTTP fetch utilities

This module downloads the raw EPG document with retry logic.
"""
import logging
import asyncio

import httpx

from epg_guide.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)


async def fetch_bytes(
    url: str,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    transport: httpx.AsyncBaseTransport | None = None
) -> bytes:
    """
    Download a document from URL with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and 5xx responses.
    Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        url: URL to download from
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)
        transport: Optional httpx transport (used by tests)

    Returns:
        Raw response body

    Raises:
        httpx.HTTPError: If download fails after all retries
    """
    safe_url = sanitize_url_for_logging(url)
    logger.info(f"Downloading EPG from {safe_url}...")

    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()

                size_mb = len(response.content) / (1024 * 1024)
                logger.info(f"Downloaded {size_mb:.2f} MB from {safe_url}")

                return response.content

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            # Transient network errors - retry
            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Download attempt {attempt + 1}/{max_retries} failed (transient error): {type(e).__name__}. "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Download failed after {max_retries} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            # HTTP errors - don't retry on 4xx (client error), retry on 5xx (server error)
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error) for {safe_url}")
                raise

            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Download attempt {attempt + 1}/{max_retries} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Download failed after {max_retries} attempts (HTTP {e.response.status_code})")

    # If we exhausted all retries, raise the last error
    if last_error:
        raise last_error

    raise RuntimeError(f"Failed to download {safe_url} after {max_retries} attempts")
