"""
Feed fetcher module for the Weather Alert Monitor.

Retrieves raw Atom XML from Environment Canada feed endpoints:
- One shared HTTP session for every source (safe for concurrent use)
- Browser-like User-Agent (the feeds answer 403 to default agents)
- Bounded timeout so a hung connection cannot stall a cycle
- No retry inside a cycle; the next scheduled pass is the retry
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import FetchError

logger = logging.getLogger(__name__)

# Configuration constants
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"
ACCEPT_HEADER = "application/atom+xml, application/xml, text/xml, */*"


class FeedFetcher:
    """
    HTTP client for Atom alert feeds.

    Every transport failure (DNS, connection refused, timeout, non-2xx,
    empty body) is surfaced as a single FetchError kind with detail.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        pool_size: int = 4
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = self._create_session(pool_size)

    def _create_session(self, pool_size: int) -> requests.Session:
        """Create the shared HTTP session."""
        session = requests.Session()

        adapter = HTTPAdapter(
            pool_connections=pool_size,
            pool_maxsize=pool_size,
            max_retries=Retry(total=0)
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": ACCEPT_HEADER,
        })

        return session

    def fetch(self, url: str) -> bytes:
        """
        Fetch one feed body.

        Returns:
            Raw XML bytes.

        Raises:
            FetchError: on any network or HTTP failure.
        """
        content, _ = self.fetch_timed(url)
        return content

    def fetch_timed(self, url: str) -> Tuple[bytes, int]:
        """Fetch one feed body along with the response time in milliseconds."""
        start_time = datetime.utcnow()

        try:
            response = self._session.get(url, timeout=self.timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.Timeout:
            raise FetchError(f"Request timed out after {self.timeout}s")
        except requests.ConnectionError as e:
            raise FetchError(f"Connection error - source unavailable: {e}")
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise FetchError(f"HTTP error {status}")
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {e}")

        response_time = int((datetime.utcnow() - start_time).total_seconds() * 1000)

        content = response.content
        if not content or not content.strip():
            raise FetchError("Empty response body")

        logger.debug(f"Fetched {len(content)} bytes from {url} in {response_time}ms")
        return content, response_time

    def close(self) -> None:
        """Close HTTP session."""
        self._session.close()

    def __enter__(self) -> "FeedFetcher":
        return self

    def __exit__(self, *exc_info: Optional[object]) -> None:
        self.close()
