"""Fetch source CSV files from a local directory or a static HTTP root.

Every fetch returns the decoded file text. Failures are raised as
SourceError so callers can decide whether a missing file contributes
zero rows or aborts the request.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import requests
from loguru import logger

from santepublique.data.vaccination_dashboard.constants import FETCH_TIMEOUT


class SourceError(OSError):
    """A source file could not be fetched or decoded."""


class CsvSource:
    """Static CSV files under a root directory or base URL.

    Example:
        source = CsvSource("https://example.org/data")
        text = await source.fetch("campagne-2024.csv")
    """

    def __init__(self, root: str | Path = "data", timeout: int = FETCH_TIMEOUT):
        self.root = str(root)
        self.timeout = timeout

    @property
    def is_remote(self) -> bool:
        return self.root.startswith(("http://", "https://"))

    def location(self, file_name: str) -> str:
        """Full path or URL of a file under the root."""
        if self.is_remote:
            return f"{self.root.rstrip('/')}/{file_name}"
        return str(Path(self.root) / file_name)

    def fetch_text(self, file_name: str) -> str:
        """Fetch a file synchronously.

        Raises:
            SourceError: If the file is missing, unreachable or not UTF-8
        """
        location = self.location(file_name)
        logger.debug("Fetching {}", location)
        if self.is_remote:
            return _download_text(location, self.timeout)
        try:
            return Path(location).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(f"Could not read {location}: {e}") from e

    async def fetch(self, file_name: str) -> str:
        """Fetch a file without blocking the event loop."""
        return await asyncio.to_thread(self.fetch_text, file_name)


def _download_text(url: str, timeout: int) -> str:
    """Download a text file over HTTP."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.content.decode("utf-8")
    except (requests.RequestException, UnicodeDecodeError) as e:
        raise SourceError(f"Could not download {url}: {e}") from e
