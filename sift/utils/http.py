"""
HTTP utilities for Sift.
"""
import logging
from typing import Optional

import backoff
import requests

from sift.config import get_config

# Configure logging
logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5

DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (compatible; SiftBot/1.0; +https://siftly.space)',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
}


def request_timeout() -> float:
    return float(get_config('detection.timeout_seconds', 10))


def _max_tries() -> int:
    return int(get_config('detection.max_tries', 3))


def _giveup(exc: requests.exceptions.RequestException) -> bool:
    # Retry only transport problems and server errors
    response = getattr(exc, 'response', None)
    return response is not None and response.status_code < 500


@backoff.on_exception(
    backoff.expo,
    (requests.exceptions.ConnectionError, requests.exceptions.Timeout, requests.exceptions.HTTPError),
    max_tries=_max_tries,
    giveup=_giveup,
)
def get_page(url: str, timeout: Optional[float] = None) -> requests.Response:
    """
    GET a page with browser-like headers, retrying transient failures.

    Args:
        url: The URL to fetch
        timeout: Timeout in seconds, defaults to ``detection.timeout_seconds``

    Returns:
        The successful response

    Raises:
        requests.exceptions.RequestException: when every attempt failed
    """
    with requests.Session() as session:
        session.max_redirects = MAX_REDIRECTS
        response = session.get(url, headers=DEFAULT_HEADERS, timeout=timeout or request_timeout())
        response.raise_for_status()
        logger.debug(f"Fetched {url} ({response.status_code})")
        return response
