"""Web page fetching for URL mode.

Fetches a page once with requests and extracts its <title> with
BeautifulSoup. The raw body is kept as bytes so it can be uploaded as
HTML without re-encoding.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
import structlog
from bs4 import BeautifulSoup

from drog.errors import FetchError

logger = structlog.get_logger()

SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class FetchedPage:
    """A downloaded web page."""

    url: str
    title: str
    body: bytes


def validate_url(url: str) -> str:
    """Check that a URL is absolute http(s).

    Raises:
        FetchError: If the URL is malformed.
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise FetchError(f"Malformed URL '{url}': {e}", url=url) from e

    if parsed.scheme.lower() not in SUPPORTED_SCHEMES or not parsed.netloc:
        raise FetchError(
            f"Malformed URL '{url}': expected an absolute http:// or https:// address",
            url=url,
        )
    return url


def extract_title(html: bytes) -> str:
    """Return the text of the page's <title> element, or "" if it has none."""
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None:
        return ""
    return soup.title.get_text()


class PageFetcher:
    """Downloads pages over HTTP."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        user_agent: str = "drog",
    ) -> None:
        """Initialize the fetcher.

        Args:
            session: requests session to reuse. A new one is created if omitted.
            timeout: Seconds to wait for the server; None waits indefinitely.
            user_agent: User-Agent header sent with the request.
        """
        self._session = session or requests.Session()
        self._timeout = timeout
        self._user_agent = user_agent

    def fetch(self, url: str) -> FetchedPage:
        """Fetch a page and parse its title.

        Raises:
            FetchError: If the URL is malformed or the request fails.
        """
        validate_url(url)
        logger.info("fetching_page", url=url)

        try:
            with self._session.get(
                url,
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            ) as response:
                response.raise_for_status()
                body = response.content
        except requests.RequestException as e:
            logger.error("page_fetch_failed", url=url, error=str(e))
            raise FetchError(f"Unable to fetch {url}: {e}", url=url) from e

        title = extract_title(body)
        logger.debug("page_fetched", url=url, title=title, size=len(body))
        return FetchedPage(url=url, title=title, body=body)
