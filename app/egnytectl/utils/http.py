"""HTTP helpers shared by the mapping loader, the directory client and provisioning.

All requests go through a ``requests.Session`` with a bounded urllib3 retry
policy for transient server errors.
"""

import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

USER_AGENT = "egnytectl"

# Status codes worth retrying
_RETRY_STATUSES = (429, 500, 502, 503, 504)


class DownloadError(Exception):
    """Raised when a download fails."""


def create_session(retries: int = 2, backoff_factor: float = 0.5) -> requests.Session:
    """Create a session with a retry strategy for transient errors.

    Args:
        retries: Total retries per request.
        backoff_factor: urllib3 backoff factor between retries.

    Returns:
        Configured requests.Session.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=_RETRY_STATUSES,
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def is_url(location: str) -> bool:
    """Check if a location is an http(s) URL rather than a path."""
    return location.lower().startswith(("http://", "https://"))


def download(
    url: str,
    *,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> bytes:
    """Download a resource and return its body.

    Args:
        url: http(s) URL to fetch.
        timeout: Timeout in seconds per request.
        session: Session to use. If None, a retrying session is created.

    Returns:
        Response body.

    Raises:
        DownloadError: On connection errors or non-2xx responses.
    """
    client = session or create_session()
    logger.debug("Downloading %s", url)
    try:
        response = client.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DownloadError(f"Download of {url} failed: {e}") from e
    logger.debug("Downloaded %d bytes from %s", len(response.content), url)
    return response.content
