import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Generator, Dict, Any, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront.app_setup.factory import create_app
from storefront.utils.security import require_user, require_admin


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Horloge manuelle pour les caches à TTL."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog:
    """
    Catalogue en mémoire: schémas produit, devis, commandes.
    - compare_error / quote_error: exception levée par l'appel correspondant
    """

    def __init__(
        self,
        quotes: Optional[List[Dict[str, Any]]] = None,
        schemas: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self.quotes = quotes if quotes is not None else []
        self.schemas = schemas or {}
        self.compare_error: Optional[Exception] = None
        self.quote_error: Optional[Exception] = None
        self.compare_calls: List[Dict[str, Any]] = []
        self.quote_calls: List[Dict[str, Any]] = []
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.order_error: Optional[Exception] = None

    def get_product(self, sku: str) -> Dict[str, Any]:
        if sku not in self.schemas:
            raise LookupError(f"unknown sku {sku}")
        return {"sku": sku, "attributes": self.schemas[sku]}

    def compare_shipping_methods(self, country, items):
        self.compare_calls.append({"country": country, "items": items})
        if self.compare_error:
            raise self.compare_error
        return list(self.quotes)

    def create_quote(self, request):
        self.quote_calls.append(request)
        if self.quote_error:
            raise self.quote_error
        return list(self.quotes)

    def create_order(self, payload):
        if self.order_error:
            raise self.order_error
        order = {"id": "ord_cat_1", "status": {"stage": "InProgress"}, "payload": payload}
        self.orders[order["id"]] = order
        return order

    def get_order(self, provider_order_id):
        if self.order_error:
            raise self.order_error
        return self.orders[provider_order_id]


def make_quote(method: str = "Standard", items: float = 40.0, shipping: float = 10.0, currency: str = "USD") -> Dict[str, Any]:
    return {
        "shipmentMethod": method,
        "costSummary": {
            "items": {"amount": str(items), "currency": currency},
            "shipping": {"amount": str(shipping), "currency": currency},
            "totalCost": {"amount": str(items + shipping), "currency": currency},
        },
        "items": [],
    }


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog(quotes=[make_quote()])


@pytest.fixture
def quote_factory():
    return make_quote


@pytest.fixture(scope="session")
def app():
    return create_app()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": "test-user",
        "email": "test@example.com",
        "role": "user",
        "metadata": {"full_name": "Test User"},
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)


@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: {"id": "admin-user-id", "role": "admin", "email": "admin@example.com"}
    yield client
    app.dependency_overrides.pop(require_admin, None)


# Aucun accès réseau à Supabase pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())


# Singletons de services réinitialisés entre les tests
@pytest.fixture(autouse=True)
def _reset_singletons(monkeypatch):
    import storefront.currency.service as currency_service
    import storefront.facets.service as facets_service
    import storefront.pricing.service as pricing_service
    import storefront.catalog.client as catalog_client
    import storefront.catalog.search as catalog_search

    monkeypatch.setattr(currency_service, "_service", None)
    monkeypatch.setattr(facets_service, "_service", None)
    monkeypatch.setattr(pricing_service, "_service", None)
    monkeypatch.setattr(catalog_client, "_client", None)
    monkeypatch.setattr(catalog_search, "_client", None)
