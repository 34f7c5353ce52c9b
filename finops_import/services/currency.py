from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import requests

from ..models.config_models import DEFAULT_FALLBACK_RATES, DEFAULT_RATES_URL, CurrencyConfig
from ..models.enums import Currency

"""Currency conversion engine.

``ExchangeRateCache`` holds a table of "units of base currency per 1 unit of
currency" and is passed explicitly to whoever needs conversions (no module
globals). The table:

- starts from a static fallback table (base currency = 1);
- is refreshed from a live source when a read finds the last successful
  refresh older than the TTL (a failed attempt is retried on the next read);
- keeps the last good table when a refresh fails, so reads never raise and
  never see an empty table.

Refreshes are single-flight: readers that find the cache stale while a
refresh is running wait for that refresh instead of starting another one.
"""

__all__ = [
    "RateFetchError",
    "RateFetcher",
    "ExchangeRateCache",
    "build_rate_cache",
]

logger = logging.getLogger(__name__)


class RateFetchError(Exception):
    """Live rate source could not be read."""
    pass


class RateFetcher:
    """Reads an exchangerate-api style payload: ``{"rates": {"EUR": 0.92}}``.

    The payload quotes units of each currency per 1 base unit; ``fetch``
    returns the inverse (base per unit) for the supported currencies present
    in the payload.
    """

    DEFAULT_TIMEOUT = 5.0

    def __init__(
        self,
        url: str = DEFAULT_RATES_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def fetch(self) -> dict[str, float]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise RateFetchError(f"rate request timed out after {self.timeout}s: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RateFetchError(f"rate request failed: {e}") from e

        if not response.ok:
            raise RateFetchError(f"rate source returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise RateFetchError(f"rate source returned invalid JSON: {e}") from e

        quoted = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(quoted, dict):
            raise RateFetchError("rate payload has no 'rates' object")

        rates: dict[str, float] = {}
        for currency in Currency:
            per_base = quoted.get(currency.value)
            if isinstance(per_base, (int, float)) and not isinstance(per_base, bool) and per_base > 0:
                rates[currency.value] = 1.0 / float(per_base)
        if not rates:
            raise RateFetchError("rate payload contains no supported currency")
        return rates


class ExchangeRateCache:
    """TTL-cached base-currency rate table with static fallback.

    Tables are held quoted against USD, the quote of the fallback table and of
    the default live source. Reads rebase them onto ``base``, so a cache with
    ``base="EUR"`` answers ``rate("EUR") == 1`` and ``rate("USD") == 1 / 1.08``.
    """

    DEFAULT_TTL_SECONDS = 3600.0
    QUOTE = Currency.USD

    def __init__(
        self,
        base: Currency | str = Currency.USD,
        fallback_rates: Mapping[str, float] | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        fetcher: RateFetcher | Any | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base = Currency.parse(base)
        self.ttl_seconds = ttl_seconds
        self._fetcher = fetcher
        self._clock = clock

        fallback = dict(DEFAULT_FALLBACK_RATES if fallback_rates is None else fallback_rates)
        fallback[self.QUOTE.value] = 1.0
        if fallback.get(self.base.value, 0) <= 0:
            raise ValueError(f"fallback rates need a positive USD rate for base currency {self.base.value}")
        self._fallback: dict[str, float] = fallback
        self._quoted: dict[str, float] = dict(fallback)

        # 最後に「成功した」更新の時刻
        self._refreshed_at: float | None = None
        self.last_refreshed: datetime | None = None

        self._lock = threading.Lock()
        self._attempts = 0

    # -- refresh -----------------------------------------------------------

    @property
    def is_stale(self) -> bool:
        if self._refreshed_at is None:
            return True
        return (self._clock() - self._refreshed_at) >= self.ttl_seconds

    def refresh(self) -> bool:
        """Try to replace the table from the live source.

        Returns True on success. Failures are logged and swallowed; the
        current table stays in place and the next stale read tries again.
        """
        with self._lock:
            return self._refresh_locked()

    def _refresh_locked(self) -> bool:
        self._attempts += 1
        if self._fetcher is None:
            return False
        try:
            fetched = self._fetcher.fetch()
        except Exception as e:  # 失敗は握りつぶして旧テーブル継続
            logger.warning("exchange rate refresh failed, keeping cached rates: %s", e)
            return False

        # 取得元が USD 以外の基準で返した場合は USD 建てに揃える
        pivot = float(fetched.get(self.QUOTE.value) or 1.0)
        quoted = dict(self._quoted)
        quoted.update({code: float(rate) / pivot for code, rate in fetched.items()})
        quoted[self.QUOTE.value] = 1.0
        if quoted.get(self.base.value, 0) <= 0:
            logger.warning("exchange rate refresh has no usable %s rate, keeping cached rates", self.base.value)
            return False
        self._quoted = quoted
        self._refreshed_at = self._clock()
        self.last_refreshed = datetime.now(UTC)
        logger.info("exchange rates refreshed (%d currencies)", len(fetched))
        return True

    def _ensure_fresh(self) -> None:
        if not self.is_stale or self._fetcher is None:
            return
        seen = self._attempts
        with self._lock:
            # 待機中に他スレッドが更新を試行済みなら再試行しない
            if self._attempts != seen or not self.is_stale:
                return
            self._refresh_locked()

    # -- conversions -------------------------------------------------------

    def _rebased(self, code: str) -> float:
        value = self._quoted.get(code)
        if value is None:
            value = self._fallback.get(code, 1.0)
        return value / self._quoted[self.base.value]

    def rate(self, code: Currency | str) -> float:
        """Units of base currency per 1 unit of ``code``."""
        currency = Currency.parse(code)
        self._ensure_fresh()
        return self._rebased(currency.value)

    def to_base(self, amount: float, code: Currency | str) -> float:
        return amount * self.rate(code)

    def from_base(self, amount: float, code: Currency | str) -> float:
        rate = self.rate(code)
        if rate == 0:
            return 0.0
        return amount / rate

    def snapshot(self) -> dict[str, float]:
        """Current table in base units (no refresh attempt)."""
        return {code: self._rebased(code) for code in self._quoted}


def build_rate_cache(config: CurrencyConfig, session: requests.Session | None = None) -> ExchangeRateCache:
    """Create a cache wired to the configured live source."""
    fetcher = None
    if config.live_refresh:
        fetcher = RateFetcher(config.refresh_url, timeout=config.timeout_seconds, session=session)
    return ExchangeRateCache(
        base=config.base,
        fallback_rates=config.fallback_rates,
        ttl_seconds=config.ttl_seconds,
        fetcher=fetcher,
    )
