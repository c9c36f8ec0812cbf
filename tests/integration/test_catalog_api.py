import pytest

import storefront.facets.views as facets_views
from storefront.facets.service import FacetService
from storefront.pricing.service import PricingService


class FakeSearch:
    def __init__(self, facets=None, error=None):
        self.result = facets or {}
        self.error = error
        self.calls = []

    def facets(self, filters):
        self.calls.append(filters)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def search(monkeypatch):
    fake = FakeSearch({"frameColour": [{"value": "Black", "count": 3}, {"value": "White", "count": 1}]})
    service = FacetService(search=fake)
    monkeypatch.setattr(facets_views, "get_facet_service", lambda: service)
    return fake


def test_available_options(client, search):
    r = client.get("/api/v1/catalog/options/framed-print", params={"country": "gb", "aspect_ratio": "Landscape"})

    assert r.status_code == 200
    body = r.json()
    assert body["country"] == "GB"
    assert body["frame_colors"] == ["Black", "White"]
    assert body["has_frame_color"] is True
    assert search.calls[0]["aspect_ratio_above"] == 105.0
    assert "aspect_ratio_min" not in search.calls[0]


def test_available_options_degraded(client, search):
    search.error = RuntimeError("index down")
    body = client.get("/api/v1/catalog/options/canvas").json()
    assert body["degraded"] is True
    assert body["has_wrap"] is True


def test_validate_configuration_endpoint(client, search):
    r = client.post("/api/v1/catalog/options/framed-print/validate", json={"config": {"frameColor": "Pink"}})
    assert r.json() == {"valid": False, "errors": ['Frame color "Pink" is not available']}


def test_resolve_attributes_endpoint(client, monkeypatch, fake_catalog):
    fake_catalog.schemas = {"GLOBAL-CAN-16X20": {"wrap": ["Black", "ImageWrap"]}}
    monkeypatch.setattr(facets_views, "get_pricing_service", lambda: PricingService(catalog=fake_catalog))

    body = client.post("/api/v1/catalog/attributes", json={"sku": "GLOBAL-CAN-16X20-0badf00d", "config": {}}).json()

    assert body == {"base_sku": "GLOBAL-CAN-16X20", "mode": "schema", "attributes": {"wrap": "imagewrap"}}
