"""
Client de l'index de recherche du catalogue (facettes).
"""
import logging
from typing import Any, Dict, Optional

import httpx

from storefront.config import CATALOG_SEARCH_URL, CATALOG_SEARCH_KEY, CATALOG_TIMEOUT_SECONDS
from .query import build_params

logger = logging.getLogger(__name__)


class SearchClient:
    def __init__(
        self,
        url: str = CATALOG_SEARCH_URL,
        api_key: str = CATALOG_SEARCH_KEY,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def facets(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        """
        Interroge l'index en mode facettes seules ($top=0).
        Retour: map brute '@search.facets' ({} si absente). Les erreurs HTTP sont propagées.
        """
        params = build_params(filters, top=0)
        resp = httpx.get(
            self.url,
            params=params,
            headers={"api-key": self.api_key, "Accept": "application/json"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json() or {}
        logger.info(
            "catalog.search facets total=%s has_facets=%s",
            data.get("@odata.count"),
            bool(data.get("@search.facets")),
        )
        return data.get("@search.facets") or {}


_client: Optional[SearchClient] = None

def get_search_client() -> SearchClient:
    global _client
    if _client is None:
        _client = SearchClient()
    return _client
