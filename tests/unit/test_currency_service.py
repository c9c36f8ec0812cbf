import httpx
import pytest
import respx

from storefront.currency.service import (
    CurrencyService,
    ExchangeRateCache,
    FALLBACK_RATES,
    round_amount,
    to_minor_units,
)

API_URL = "https://rates.example.test/latest/USD"


def _service(clock):
    return CurrencyService(cache=ExchangeRateCache(ttl_seconds=12 * 3600, clock=clock), api_url=API_URL, timeout=1)


@respx.mock
def test_convert_uses_fallback_rate_when_api_down(fake_clock):
    respx.get(API_URL).mock(side_effect=httpx.ConnectError("down"))
    service = _service(fake_clock)

    assert service.convert(45.00, "USD", "CAD") == 60.75


@respx.mock
def test_fetch_failure_is_not_cached(fake_clock):
    route = respx.get(API_URL).mock(side_effect=httpx.ConnectError("down"))
    service = _service(fake_clock)

    assert service.get_rates() == FALLBACK_RATES
    assert service.cache_status()["cached"] is False

    route.mock(return_value=httpx.Response(200, json={"rates": {"USD": 1, "CAD": 1.40}}))
    assert service.get_rates()["CAD"] == 1.40
    assert route.call_count == 2


@respx.mock
def test_cache_hit_until_ttl_then_refetch(fake_clock):
    route = respx.get(API_URL).mock(return_value=httpx.Response(200, json={"rates": {"EUR": 0.9}}))
    service = _service(fake_clock)

    service.get_rates()
    fake_clock.advance(12 * 3600 - 1)
    service.get_rates()
    assert route.call_count == 1

    fake_clock.advance(2)
    service.get_rates()
    assert route.call_count == 2


@respx.mock
def test_rates_always_include_usd_base(fake_clock):
    respx.get(API_URL).mock(return_value=httpx.Response(200, json={"rates": {"EUR": 0.9}}))
    rates = _service(fake_clock).get_rates()
    assert rates["USD"] == 1.0


@respx.mock
def test_cross_rate_pivots_through_usd(fake_clock):
    respx.get(API_URL).mock(return_value=httpx.Response(200, json={"rates": {"EUR": 0.8, "GBP": 0.5}}))
    service = _service(fake_clock)

    # 100 EUR -> 125 USD -> 62.50 GBP
    assert service.convert(100, "EUR", "GBP") == 62.5
    assert service.rate("EUR", "GBP") == pytest.approx(0.625)


@respx.mock
def test_unknown_currency_rate_is_one(fake_clock):
    respx.get(API_URL).mock(return_value=httpx.Response(200, json={"rates": {"EUR": 0.8}}))
    service = _service(fake_clock)

    assert service.rate("USD", "XYZ") == 1.0
    assert service.convert(10.005, "USD", "XYZ") == 10.01


@respx.mock
def test_round_trip_within_rounding_tolerance(fake_clock):
    respx.get(API_URL).mock(side_effect=httpx.ConnectError("down"))
    service = _service(fake_clock)

    for currency in ("EUR", "GBP", "CAD", "AUD", "CHF"):
        there = service.convert(123.45, "USD", currency)
        back = service.convert(there, currency, "USD")
        assert back == pytest.approx(123.45, abs=0.02)


def test_zero_decimal_rounding_and_minor_units():
    assert round_amount(1234.5, "JPY") == 1235.0
    assert round_amount(10.005, "USD") == 10.01
    assert to_minor_units(12.34, "USD") == 1234
    assert to_minor_units(1500, "JPY") == 1500
    assert to_minor_units(0.1 + 0.2, "EUR") == 30


def test_cache_status_reports_age_and_expiry(fake_clock):
    cache = ExchangeRateCache(ttl_seconds=3600, clock=fake_clock)
    assert cache.status() == {"cached": False, "age_minutes": None, "expires_in_minutes": None}

    cache.put({"USD": 1.0})
    fake_clock.advance(15 * 60)
    status = cache.status()
    assert status["cached"] is True
    assert status["age_minutes"] == 15
    assert status["expires_in_minutes"] == 45

    cache.clear()
    assert cache.get() is None
