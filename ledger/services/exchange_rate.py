"""
Exchange Rate Service

Fetches the USD->KRW rate used to display amounts in dollars.

DESIGN DECISION: A failed fetch is NEVER an error for the user.
The rate only affects display, so any timeout, non-2xx response or
malformed payload is absorbed and the fallback rate (1300) is used until
the next successful refresh. RateFetchError exists for callers that want
to see the failure (tests, the settings page); `refresh()` never raises.

Overlapping refreshes are not coordinated: whichever finishes last wins.
"""

import asyncio
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import httpx
import structlog

from ledger.config import get_settings
from ledger.config.settings import ExchangeRateSettings
from ledger.models.transaction import ExchangeRate

if TYPE_CHECKING:
    from ledger.audit import AuditLogger

logger = structlog.get_logger(__name__)


class RateFetchError(Exception):
    """The exchange rate could not be fetched."""
    pass


class ExchangeRateService:
    """
    Cached USD->KRW rate with a fallback.

    Usage:
        service = ExchangeRateService()
        await service.refresh()
        service.current_rate   # always a usable float
    """

    def __init__(
        self,
        settings: Optional[ExchangeRateSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._settings = settings or get_settings().exchange_rate
        self._client = client
        self._audit_logger = audit_logger
        self._latest: Optional[ExchangeRate] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP client (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @property
    def latest(self) -> Optional[ExchangeRate]:
        """Last rate seen (fetched or fallback); None before the first refresh."""
        return self._latest

    @property
    def current_rate(self) -> float:
        """The rate to display with; the fallback when nothing was fetched yet."""
        if self._latest is None:
            return self._settings.fallback_rate
        return self._latest.rate

    async def fetch_rate(self, base: str = "USD") -> float:
        """
        Fetch the KRW rate for `base` from the rate API.

        Raises:
            RateFetchError: On timeout, non-2xx status, or a payload without rates.KRW
        """
        url = self._settings.api_url.format(base=base)
        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise RateFetchError(f"Rate API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RateFetchError(f"Rate API unreachable: {e}") from e
        except ValueError as e:
            raise RateFetchError("Rate API returned invalid JSON") from e

        rates = payload.get("rates") if isinstance(payload, dict) else None
        krw = rates.get("KRW") if isinstance(rates, dict) else None
        try:
            rate = float(krw)
        except (TypeError, ValueError):
            raise RateFetchError("Rate API response has no KRW rate")
        if not math.isfinite(rate) or rate <= 0:
            raise RateFetchError(f"Rate API returned a non-positive rate: {rate}")
        return rate

    async def refresh(self) -> ExchangeRate:
        """
        Fetch a fresh rate, falling back to the configured constant on failure.

        Never raises.
        """
        error_message = None
        try:
            rate = await self.fetch_rate()
            self._latest = ExchangeRate(rate=rate, fetched_at=datetime.now(timezone.utc))
            logger.info("exchange_rate_refreshed", rate=rate)
        except RateFetchError as e:
            error_message = str(e)
            self._latest = ExchangeRate(
                rate=self._settings.fallback_rate,
                fetched_at=datetime.now(timezone.utc),
                is_fallback=True,
            )
            logger.warning(
                "exchange_rate_fallback",
                error=str(e),
                fallback_rate=self._settings.fallback_rate,
            )

        if self._audit_logger:
            await self._audit_logger.log_rate_refresh(
                self._latest.rate,
                is_fallback=self._latest.is_fallback,
                error_message=error_message,
            )
        return self._latest

    async def run_periodic(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Refresh now, then every `refresh_interval_seconds` until stop_event is set.

        Intended to run as a background task next to a long-lived process.
        """
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            await self.refresh()
            try:
                await asyncio.wait_for(
                    stop_event.wait(),
                    timeout=self._settings.refresh_interval_seconds,
                )
            except asyncio.TimeoutError:
                continue
