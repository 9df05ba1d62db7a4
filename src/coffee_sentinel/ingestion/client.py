"""Async HTTP client for the federation's published price workbook."""

from __future__ import annotations

import logging

import httpx

from coffee_sentinel.core.config import SourceConfig
from coffee_sentinel.core.exceptions import FetchError

logger = logging.getLogger(__name__)


class PriceSheetClient:
    """Downloads the price workbook with a single GET.

    No retries: a failed fetch fails the run, and the scheduler's next
    trigger is the retry. Use via `async with PriceSheetClient(...) as client:`.
    """

    def __init__(self, config: SourceConfig) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            headers={"User-Agent": config.user_agent},
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> PriceSheetClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    async def fetch(self, url: str | None = None) -> bytes:
        """Download the workbook body.

        Args:
            url: Override for the configured source URL.

        Returns:
            Raw response bytes (expected to be an .xlsx document).

        Raises:
            FetchError: Transport failure, timeout, or non-2xx status.
        """
        target = url or self._config.url
        logger.info("Fetching price workbook from %s", target)

        try:
            response = await self._client.get(target)
        except httpx.HTTPError as e:
            raise FetchError(
                f"Failed to fetch file: {e}",
                context={"url": target, "error": str(e)},
            ) from e

        if not response.is_success:
            raise FetchError(
                f"Failed to fetch file: HTTP {response.status_code} "
                f"{response.reason_phrase}".rstrip(),
                context={"url": target, "status_code": response.status_code},
            )

        logger.info("Downloaded %d bytes", len(response.content))
        return response.content
