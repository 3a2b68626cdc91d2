"""Unit tests for HTTP helpers."""

from unittest.mock import MagicMock

import pytest
import requests
from egnytectl.utils.http import USER_AGENT, DownloadError, create_session, download, is_url


class TestCreateSession:
    """Tests for create_session function."""

    def test_retry_policy(self) -> None:
        """Both schemes use the bounded retry adapter."""
        session = create_session(retries=1)

        adapter = session.get_adapter("https://graph.microsoft.com")
        assert adapter.max_retries.total == 1
        assert 503 in adapter.max_retries.status_forcelist
        assert session.headers["User-Agent"] == USER_AGENT


class TestIsUrl:
    """Tests for is_url function."""

    @pytest.mark.parametrize(
        ("location", "expected"),
        [
            ("https://intranet.example.com/drives.csv", True),
            ("HTTP://intranet/drives.csv", True),
            ("\\\\fs01\\it\\drives.csv", False),
            ("/etc/egnytectl/drives.csv", False),
        ],
    )
    def test_is_url(self, location: str, expected: bool) -> None:
        """Only http(s) locations are URLs."""
        assert is_url(location) is expected


class TestDownload:
    """Tests for download function."""

    def test_returns_body(self) -> None:
        """The response body is returned."""
        session = MagicMock()
        session.get.return_value.content = b"DriveName,DriveLetter\n"

        assert download("https://x.example/d.csv", timeout=5, session=session) == (
            b"DriveName,DriveLetter\n"
        )
        session.get.assert_called_once_with("https://x.example/d.csv", timeout=5)

    def test_http_error(self) -> None:
        """Non-2xx responses raise DownloadError."""
        session = MagicMock()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404")

        with pytest.raises(DownloadError, match="404"):
            download("https://x.example/d.csv", session=session)

    def test_connection_error(self) -> None:
        """Connection errors raise DownloadError."""
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(DownloadError, match="refused"):
            download("https://x.example/d.csv", session=session)
