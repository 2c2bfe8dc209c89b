"""
HTTP client for exchange-rate feeds with retry logic.
"""
from __future__ import annotations
import requests
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type
from loguru import logger
from typing import Optional
from ..config import BillingConfig

DEFAULT_HEADERS = {
    "Accept": "application/xml, text/xml",
    "User-Agent": "bin-billing-rates/1.0",
}


class RateFeedConnectionError(Exception):
    """Raised when the rate feed cannot be reached."""
    pass


class RateFeedResponseError(Exception):
    """Raised when the rate feed answers with something other than a rate document."""
    pass


class RateFeedClient:
    """
    HTTP client for a rate feed.

    Features:
    - Automatic retry with exponential backoff on connection failures
    - Connection pooling via requests.Session
    - Configurable timeout
    """

    def __init__(self, config: Optional[BillingConfig] = None):
        self.config = config or BillingConfig.from_env()
        self.url = self.config.rate_feed_url
        self.session = requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=30),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(RateFeedConnectionError),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Retrying rate feed request (attempt {retry_state.attempt_number})..."
        ),
    )
    def fetch(self, url: Optional[str] = None, timeout: Optional[int] = None) -> str:
        """
        Download the rate document.

        Args:
            url: Feed URL (uses config default if not specified)
            timeout: Request timeout in seconds (uses config default if not specified)

        Returns:
            Response body

        Raises:
            RateFeedConnectionError: If the feed cannot be reached
            RateFeedResponseError: If the feed answers with an HTTP error
        """
        url = url or self.url
        timeout = timeout or self.config.request_timeout
        try:
            r = self.session.get(url, timeout=timeout)
        except requests.Timeout as e:
            logger.error(f"Rate feed request timed out after {timeout}s")
            raise RateFeedConnectionError(f"Request timeout: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Failed to reach rate feed at {url}: {e}")
            raise RateFeedConnectionError(f"Cannot reach rate feed: {e}") from e

        if r.status_code >= 400:
            raise RateFeedResponseError(f"Rate feed returned HTTP {r.status_code}")
        return r.text

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
