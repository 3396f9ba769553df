"""The Odds API client for head-to-head football odds."""

import asyncio
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import httpx

from wager_wizard.errors import ErrorKind, OddsProviderError
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

BASE_URL = "https://api.the-odds-api.com/v4"
H2H_MARKET = "h2h"


@dataclass
class OddsApiConfig:
    """Configuration for the odds provider client."""

    api_key: str | None = None
    base_url: str = BASE_URL
    timeout: float = 10.0
    odds_format: str = "decimal"


def _safe_url(url: httpx.URL | str) -> str:
    """Strip query params (they carry the API key) for logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class OddsApiClient:
    """Issues one bounded GET per lookup and classifies every failure."""

    def __init__(self, config: OddsApiConfig | None = None, http_client: httpx.AsyncClient | None = None):
        """Initialize odds client.

        Args:
            config: Client configuration
            http_client: Shared httpx client; one is created (and owned) if omitted
        """
        self.config = config or OddsApiConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.config.timeout)

    async def get_odds(self, sport: str, region: str) -> list[dict[str, Any]]:
        """Fetch upcoming matches with head-to-head prices for a league.

        Args:
            sport: Provider league key, e.g. ``soccer_epl``
            region: Bookmaker region key (``us``, ``uk`` or ``eu``)

        Returns:
            Raw match objects as returned by the provider

        Raises:
            OddsProviderError: Classified as CONFIG_ERROR, TOOL_TIMEOUT, PROVIDER_ERROR or NO_DATA
        """
        if not self.config.api_key:
            raise OddsProviderError("ODDS_API_KEY is not configured", kind=ErrorKind.CONFIG_ERROR)

        url = f"{self.config.base_url.rstrip('/')}/sports/{sport}/odds"
        params = {
            "apiKey": self.config.api_key,
            "regions": region,
            "markets": H2H_MARKET,
            "oddsFormat": self.config.odds_format,
        }

        logger.debug(f"Requesting odds: {_safe_url(url)} regions={region}")
        try:
            # Cancelling the request coroutine aborts the underlying connection
            async with asyncio.timeout(self.config.timeout):
                response = await self._client.get(url, params=params)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"Odds request timed out after {self.config.timeout}s: {_safe_url(url)}")
            raise OddsProviderError(
                f"Odds provider did not respond within {self.config.timeout:g}s", kind=ErrorKind.TOOL_TIMEOUT
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Odds request failed: {_safe_url(url)}: {type(e).__name__}: {e}")
            raise OddsProviderError(f"Network error contacting odds provider: {type(e).__name__}") from e

        self._log_quota(response)

        if not response.is_success:
            logger.warning(f"Odds provider returned HTTP {response.status_code} for {_safe_url(url)}")
            raise OddsProviderError(
                f"Odds provider returned HTTP {response.status_code}",
                kind=ErrorKind.PROVIDER_ERROR,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise OddsProviderError("Odds provider returned a malformed body") from e

        if isinstance(payload, dict):
            reported = payload.get("message") or payload.get("error") or "unexpected object payload"
            logger.info(f"Odds provider reported no data for {sport}: {reported}")
            raise OddsProviderError(str(reported), kind=ErrorKind.NO_DATA)

        if not isinstance(payload, list) or not payload:
            raise OddsProviderError(f"No upcoming matches for {sport}", kind=ErrorKind.NO_DATA)

        logger.info(f"Fetched {len(payload)} matches for {sport} ({region})")
        return payload

    def _log_quota(self, response: httpx.Response) -> None:
        remaining = response.headers.get("x-requests-remaining")
        if remaining is not None:
            logger.debug(f"Odds API quota - used: {response.headers.get('x-requests-used')}, remaining: {remaining}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
