"""
Service de conversion de devises (base USD).

- Taux récupérés auprès d'une API publique (best-effort, timeout borné)
- Cache unique en mémoire, TTL 12h par défaut, remplacé en bloc à chaque rafraîchissement
- Un échec de récupération sert la table de secours SANS alimenter le cache
- Conversion toujours pivotée par USD; arrondi 2 décimales (0 pour les devises sans décimales)
"""
import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional

import httpx

from storefront.config import (
    CURRENCY_API_URL,
    CURRENCY_TIMEOUT_SECONDS,
    CURRENCY_CACHE_TTL_SECONDS,
)

logger = logging.getLogger(__name__)

BASE_CURRENCY = "USD"

# Table de secours (1 USD = x devise)
FALLBACK_RATES: Dict[str, float] = {
    "USD": 1.0,
    "CAD": 1.35,
    "EUR": 0.92,
    "GBP": 0.79,
    "AUD": 1.52,
    "JPY": 149.50,
    "KRW": 1320.0,
    "SGD": 1.34,
    "HKD": 7.80,
    "CHF": 0.88,
    "SEK": 10.50,
    "NOK": 10.75,
    "DKK": 6.90,
    "PLN": 4.05,
    "CZK": 23.0,
    "HUF": 360.0,
    "MXN": 17.50,
    "BRL": 5.00,
    "INR": 83.0,
    "NZD": 1.62,
}

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "CLP", "PYG", "UGX"})


def is_zero_decimal(currency: str) -> bool:
    return (currency or "").upper() in ZERO_DECIMAL_CURRENCIES


def round_amount(amount: float, currency: str) -> float:
    """
    Arrondit un montant selon la devise (demi supérieur).
    - 0 décimale pour JPY, KRW, VND, CLP, PYG, UGX
    - 2 décimales sinon
    """
    exp = Decimal("1") if is_zero_decimal(currency) else Decimal("0.01")
    return float(Decimal(str(amount)).quantize(exp, rounding=ROUND_HALF_UP))


def to_minor_units(amount: float, currency: str) -> int:
    """Montant en unités mineures pour le processeur de paiement (centimes, ou unité pour JPY...)."""
    factor = 1 if is_zero_decimal(currency) else 100
    return int((Decimal(str(amount)) * factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ExchangeRateCache:
    """
    Entrée unique {rates, fetched_at}, base USD, expirée après ttl_seconds.
    - L'horloge est injectable (tests déterministes)
    """

    def __init__(self, ttl_seconds: int = CURRENCY_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._rates: Optional[Dict[str, float]] = None
        self._fetched_at: Optional[float] = None

    def get(self) -> Optional[Dict[str, float]]:
        if self._rates is None or self._fetched_at is None:
            return None
        if self._clock() - self._fetched_at >= self.ttl_seconds:
            return None
        return self._rates

    def put(self, rates: Dict[str, float]) -> None:
        # Remplacement complet, jamais de fusion partielle
        self._rates = dict(rates)
        self._fetched_at = self._clock()

    def clear(self) -> None:
        self._rates = None
        self._fetched_at = None

    def status(self) -> Dict[str, Any]:
        if self._rates is None or self._fetched_at is None:
            return {"cached": False, "age_minutes": None, "expires_in_minutes": None}
        age = self._clock() - self._fetched_at
        return {
            "cached": age < self.ttl_seconds,
            "age_minutes": int(age // 60),
            "expires_in_minutes": max(0, int((self.ttl_seconds - age) // 60)),
        }


class CurrencyService:
    """
    Conversion de devises avec cache et table de secours.
    - get_rates / rate / convert ne lèvent jamais: en cas d'échec amont, table de secours + warning
    """

    def __init__(
        self,
        cache: Optional[ExchangeRateCache] = None,
        api_url: str = CURRENCY_API_URL,
        timeout: float = CURRENCY_TIMEOUT_SECONDS,
    ):
        self.cache = cache or ExchangeRateCache()
        self.api_url = api_url
        self.timeout = timeout

    def _fetch_rates(self) -> Dict[str, float]:
        resp = httpx.get(self.api_url, timeout=self.timeout, headers={"Accept": "application/json"})
        resp.raise_for_status()
        payload = resp.json() or {}
        rates = payload.get("rates") or {}
        if not isinstance(rates, dict) or not rates:
            raise ValueError("réponse de taux vide")
        cleaned = {str(k).upper(): float(v) for k, v in rates.items() if v}
        cleaned[BASE_CURRENCY] = 1.0
        return cleaned

    def get_rates(self) -> Dict[str, float]:
        cached = self.cache.get()
        if cached is not None:
            return cached
        try:
            rates = self._fetch_rates()
        except Exception as e:
            logger.warning("currency.get_rates fetch failed, using fallback table: %s", e)
            return dict(FALLBACK_RATES)
        self.cache.put(rates)
        logger.info("currency.get_rates refreshed currencies=%s", len(rates))
        return rates

    def rate(self, from_currency: str, to_currency: str) -> float:
        """
        Taux croisé from -> to (to_rate / from_rate, pivot USD).
        - Devise inconnue: 1.0 (pas de conversion)
        """
        src = (from_currency or BASE_CURRENCY).upper()
        dst = (to_currency or BASE_CURRENCY).upper()
        if src == dst:
            return 1.0
        rates = self.get_rates()
        if src not in rates or dst not in rates:
            logger.warning("currency.rate unknown currency from=%s to=%s", src, dst)
            return 1.0
        return rates[dst] / rates[src]

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        src = (from_currency or BASE_CURRENCY).upper()
        dst = (to_currency or BASE_CURRENCY).upper()
        if src == dst:
            return round_amount(amount, dst)
        rates = self.get_rates()
        if src not in rates or dst not in rates:
            logger.warning("currency.convert unknown currency from=%s to=%s", src, dst)
            return round_amount(amount, dst)
        amount_usd = amount / rates[src]
        return round_amount(amount_usd * rates[dst], dst)

    def supported_currencies(self) -> List[str]:
        return sorted(self.get_rates().keys())

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_status(self) -> Dict[str, Any]:
        return self.cache.status()


_service: Optional[CurrencyService] = None

def get_currency_service() -> CurrencyService:
    """Instance partagée (construite une fois, passée par référence aux services)."""
    global _service
    if _service is None:
        _service = CurrencyService()
    return _service
