"""
Adaptateur HTTP du catalogue print-on-demand (produits, devis, commandes).
- httpx avec timeout borné et en-tête X-API-Key
- Lectures (GET) rejouées sur erreur réseau, 429 et 5xx (tenacity)
- Les erreurs HTTP sont propagées: la politique de repli appartient aux services appelants
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from storefront.config import CATALOG_API_URL, CATALOG_API_KEY, CATALOG_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def _retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return False


_read_retry = retry(
    retry=retry_if_exception(_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)


def _amount(value: Any) -> float:
    try:
        return float((value or {}).get("amount") or 0)
    except (TypeError, ValueError, AttributeError):
        return 0.0


class CatalogClient:
    def __init__(
        self,
        base_url: str = CATALOG_API_URL,
        api_key: str = CATALOG_API_KEY,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = httpx.request(
            method,
            f"{self.base_url}{endpoint}",
            json=json,
            headers={
                "X-API-Key": self.api_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        if resp.status_code >= 400:
            logger.warning("catalog.request %s %s -> %s", method, endpoint, resp.status_code)
        resp.raise_for_status()
        return resp.json() or {}

    @_read_retry
    def get_product(self, sku: str) -> Dict[str, Any]:
        """
        Détail produit: {sku, attributes: {nom: [valeurs valides]}, ...}.
        """
        data = self._request("GET", f"/products/{sku}")
        return data.get("product") or data

    def create_quote(self, request: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        POST /quotes: {destinationCountryCode, shippingMethod, items} -> liste de devis.
        """
        data = self._request("POST", "/quotes", json=request)
        return list(data.get("quotes") or [])

    def compare_shipping_methods(self, country: str, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Devis pour toutes les méthodes (l'API les renvoie toutes), triés par coût total croissant.
        """
        quotes = self.create_quote({
            "destinationCountryCode": country,
            "shippingMethod": "Standard",
            "items": items,
        })
        return sorted(quotes, key=lambda q: _amount((q.get("costSummary") or {}).get("totalCost")))

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/Orders", json=payload)
        return data.get("order") or data

    @_read_retry
    def get_order(self, provider_order_id: str) -> Dict[str, Any]:
        data = self._request("GET", f"/Orders/{provider_order_id}")
        return data.get("order") or data


_client: Optional[CatalogClient] = None

def get_catalog_client() -> CatalogClient:
    global _client
    if _client is None:
        _client = CatalogClient()
    return _client
