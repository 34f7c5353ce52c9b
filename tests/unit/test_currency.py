from __future__ import annotations

import threading
import time

import pytest
import requests
import responses

from finops_import.models import Currency, CurrencyConfig
from finops_import.services.currency import (
    ExchangeRateCache,
    RateFetchError,
    RateFetcher,
    build_rate_cache,
)

RATES_URL = "https://rates.test/latest/USD"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingFetcher:
    def __init__(self, rates=None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.rates = rates or {"EUR": 1.10, "INR": 0.0125}
        self.error = error
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def fetch(self):
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.rates)


def test_fallback_table_without_fetcher():
    cache = ExchangeRateCache()
    assert cache.rate(Currency.USD) == 1.0
    assert cache.rate("inr") == pytest.approx(0.012)
    assert cache.rate("EUR") == pytest.approx(1.08)
    assert cache.to_base(1000, "INR") == pytest.approx(12.0)
    assert cache.from_base(12, "INR") == pytest.approx(1000.0)


def test_from_base_with_zero_rate_returns_zero():
    cache = ExchangeRateCache(fallback_rates={"USD": 1.0, "EUR": 0.0})
    assert cache.from_base(50, "EUR") == 0.0


@pytest.mark.parametrize("code", list(Currency))
def test_to_base_from_base_round_trip(code):
    cache = ExchangeRateCache()
    assert cache.from_base(cache.to_base(123.45, code), code) == pytest.approx(123.45)


def test_unknown_currency_rejected():
    cache = ExchangeRateCache()
    with pytest.raises(ValueError):
        cache.rate("JPY")


def test_first_read_refreshes_then_ttl_caches():
    clock = FakeClock()
    fetcher = CountingFetcher()
    cache = ExchangeRateCache(ttl_seconds=3600, fetcher=fetcher, clock=clock)

    assert cache.rate("EUR") == pytest.approx(1.10)
    assert fetcher.calls == 1
    assert cache.last_refreshed is not None

    clock.now += 3599
    cache.rate("EUR")
    assert fetcher.calls == 1

    clock.now += 1
    fetcher.rates = {"EUR": 1.20}
    assert cache.rate("EUR") == pytest.approx(1.20)
    assert fetcher.calls == 2
    # 取得されなかった通貨は直前の値を維持
    assert cache.rate("INR") == pytest.approx(0.0125)


def test_failed_refresh_keeps_fallback_and_warns(caplog):
    clock = FakeClock()
    fetcher = CountingFetcher(error=RateFetchError("boom"))
    cache = ExchangeRateCache(fetcher=fetcher, clock=clock)

    assert cache.rate("GBP") == pytest.approx(1.27)
    assert cache.last_refreshed is None
    assert any("exchange rate refresh failed" in r.getMessage() for r in caplog.records)


def test_failed_refresh_is_retried_on_next_read():
    clock = FakeClock()
    fetcher = CountingFetcher(error=RateFetchError("boom"), rates={"EUR": 2.0})
    cache = ExchangeRateCache(fetcher=fetcher, clock=clock)

    assert cache.rate("EUR") == pytest.approx(1.08)
    assert fetcher.calls == 1

    fetcher.error = None
    clock.now += 60
    assert cache.rate("EUR") == pytest.approx(2.0)
    assert fetcher.calls == 2
    assert cache.last_refreshed is not None


def test_failed_refresh_keeps_last_good_table():
    clock = FakeClock()
    fetcher = CountingFetcher(rates={"EUR": 1.5})
    cache = ExchangeRateCache(ttl_seconds=10, fetcher=fetcher, clock=clock)
    assert cache.rate("EUR") == pytest.approx(1.5)

    fetcher.error = requests.exceptions.ConnectionError("offline")
    clock.now += 11
    assert cache.rate("EUR") == pytest.approx(1.5)
    assert fetcher.calls == 2


def test_refresh_returns_status():
    assert ExchangeRateCache(fetcher=CountingFetcher()).refresh() is True
    assert ExchangeRateCache(fetcher=CountingFetcher(error=RateFetchError("x"))).refresh() is False
    assert ExchangeRateCache().refresh() is False


def test_base_currency_is_always_one():
    cache = ExchangeRateCache(fetcher=CountingFetcher(rates={"USD": 0.5, "EUR": 1.1}))
    cache.refresh()
    assert cache.snapshot()["USD"] == 1.0


def test_concurrent_stale_reads_share_one_refresh():
    fetcher = CountingFetcher(delay=0.05)
    cache = ExchangeRateCache(fetcher=fetcher)
    results: list[float] = []
    start = threading.Barrier(8)

    def read() -> None:
        start.wait()
        results.append(cache.rate("EUR"))

    threads = [threading.Thread(target=read) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert fetcher.calls == 1
    assert len(results) == 8


# --- RateFetcher ------------------------------------------------------------

@responses.activate
def test_fetcher_inverts_quoted_rates():
    responses.add(
        responses.GET,
        RATES_URL,
        json={"base": "USD", "rates": {"USD": 1, "EUR": 0.8, "INR": 80, "JPY": 150}},
        status=200,
    )
    rates = RateFetcher(RATES_URL).fetch()
    assert rates["USD"] == 1.0
    assert rates["EUR"] == pytest.approx(1.25)
    assert rates["INR"] == pytest.approx(0.0125)
    assert "JPY" not in rates


@responses.activate
def test_fetcher_http_error():
    responses.add(responses.GET, RATES_URL, json={"error": "nope"}, status=503)
    with pytest.raises(RateFetchError, match="HTTP 503"):
        RateFetcher(RATES_URL).fetch()


@responses.activate
def test_fetcher_malformed_payload():
    responses.add(responses.GET, RATES_URL, body="<html>", status=200)
    with pytest.raises(RateFetchError, match="invalid JSON"):
        RateFetcher(RATES_URL).fetch()


@responses.activate
def test_fetcher_payload_without_rates():
    responses.add(responses.GET, RATES_URL, json={"result": "error"}, status=200)
    with pytest.raises(RateFetchError, match="no 'rates'"):
        RateFetcher(RATES_URL).fetch()


@responses.activate
def test_fetcher_timeout():
    responses.add(responses.GET, RATES_URL, body=requests.exceptions.ReadTimeout("slow"))
    with pytest.raises(RateFetchError, match="timed out"):
        RateFetcher(RATES_URL, timeout=0.1).fetch()


@responses.activate
def test_cache_with_live_fetcher_end_to_end():
    responses.add(responses.GET, RATES_URL, json={"rates": {"USD": 1, "GBP": 0.8}}, status=200)
    cache = build_rate_cache(CurrencyConfig(refresh_url=RATES_URL))
    assert cache.rate("GBP") == pytest.approx(1.25)
    assert cache.rate("CAD") == pytest.approx(0.74)
    assert len(responses.calls) == 1


def test_build_rate_cache_offline():
    cache = build_rate_cache(CurrencyConfig(live_refresh=False, fallback_rates={"USD": 1.0, "EUR": 2.0}))
    assert cache.rate("EUR") == 2.0
    assert cache.refresh() is False


# --- non-USD base -----------------------------------------------------------

def test_fallback_table_is_rebased_onto_base_currency():
    cache = ExchangeRateCache(base="EUR")
    assert cache.rate("EUR") == 1.0
    assert cache.rate("USD") == pytest.approx(1 / 1.08)
    assert cache.rate("GBP") == pytest.approx(1.27 / 1.08)
    assert cache.to_base(108, "USD") == pytest.approx(100.0)
    assert cache.snapshot()["EUR"] == 1.0
    assert cache.snapshot()["USD"] != cache.snapshot()["EUR"]


def test_fetched_table_is_rebased_onto_base_currency():
    fetcher = CountingFetcher(rates={"USD": 1.0, "EUR": 1.25, "INR": 0.0125})
    cache = ExchangeRateCache(base="EUR", fetcher=fetcher)
    assert cache.rate("USD") == pytest.approx(0.8)
    assert cache.rate("INR") == pytest.approx(0.01)
    assert cache.rate("EUR") == 1.0


def test_fetched_table_quoted_against_other_currency_is_normalised():
    # EUR 基準のペイロード: 1 USD = 0.8 EUR
    fetcher = CountingFetcher(rates={"EUR": 1.0, "USD": 0.8})
    cache = ExchangeRateCache(fetcher=fetcher)
    assert cache.rate("EUR") == pytest.approx(1.25)
    assert cache.rate("USD") == 1.0


def test_base_without_fallback_rate_is_rejected():
    with pytest.raises(ValueError, match="base currency EUR"):
        ExchangeRateCache(base="EUR", fallback_rates={"USD": 1.0})


def test_build_rate_cache_with_eur_base():
    cache = build_rate_cache(CurrencyConfig(base=Currency.EUR, live_refresh=False))
    assert cache.to_base(100, "EUR") == 100
    assert cache.to_base(100, "USD") == pytest.approx(100 / 1.08)
