import pytest

from storefront.attributes.models import FrameConfiguration
from storefront.cart.models import CartLineItem
from storefront.currency.service import CurrencyService, ExchangeRateCache
from storefront.errors import CheckoutError, ErrorKind
from storefront.pricing.models import QuoteItem
from storefront.pricing.service import PricingService, merge_quote_items, quote_item_key
from storefront.pricing.shipping import recommended_method, select_quote, shipping_options
from storefront.pricing.sku import extract_base_sku


class _FixedRates(CurrencyService):
    def __init__(self, rates):
        super().__init__(cache=ExchangeRateCache())
        self._rates = rates

    def get_rates(self):
        return dict(self._rates)


def _line(sku="GLOBAL-CFPM-16X20-1a2b3c4d", quantity=1, price=50.0, **config):
    return CartLineItem(id=f"line-{sku}-{quantity}", sku=sku, quantity=quantity, price=price, original_price=price,
                        frame_config=FrameConfiguration(**config))


@pytest.mark.parametrize(
    "sku,base",
    [
        ("GLOBAL-CFPM-16X20-1a2b3c4d", "GLOBAL-CFPM-16X20"),
        ("GLOBAL-CFPM-16X20-1A2B3C4D-deadbeef", "GLOBAL-CFPM-16X20"),
        ("GLOBAL-CFPM-16X20-12345678", "GLOBAL-CFPM-16X20"),
        ("GLOBAL-CFPM-16X20", "GLOBAL-CFPM-16X20"),
        ("GLOBAL-CFPM-16X20-xyz", "GLOBAL-CFPM-16X20-xyz"),
    ],
)
def test_extract_base_sku_is_idempotent(sku, base):
    assert extract_base_sku(sku) == base
    assert extract_base_sku(extract_base_sku(sku)) == extract_base_sku(sku)


def test_merge_quote_items_sums_copies_and_is_order_independent():
    a = QuoteItem(base_sku="SKU-A", copies=2, attributes={"color": "black", "mount": "1.4mm"})
    b = QuoteItem(base_sku="SKU-A", copies=3, attributes={"mount": "1.4mm", "color": "black"})
    c = QuoteItem(base_sku="SKU-B", copies=1)

    merged = merge_quote_items([a, c, b])
    assert merged == merge_quote_items([b, a, c])
    assert len(merged) == 2
    by_key = {quote_item_key(i): i for i in merged}
    assert by_key[quote_item_key(a)].copies == 5


def test_quote_request_omits_empty_attributes_and_uses_lowercase_print_area():
    item = QuoteItem(base_sku="SKU-B", copies=1).to_request()
    assert item == {"sku": "SKU-B", "copies": 1, "assets": [{"printArea": "default"}]}


def test_select_quote_three_tier_fallback(quote_factory):
    express = quote_factory("Express")
    standard = quote_factory("Standard")
    budget = quote_factory("Budget")

    assert select_quote([standard, express], "express") is express
    assert select_quote([budget, standard], "Overnight") is standard
    assert select_quote([budget, express], "Overnight") is budget
    assert select_quote([], "Standard") is None


def test_shipping_options_and_recommendation(quote_factory):
    options = shipping_options([quote_factory("Express", shipping=25), quote_factory("Budget", shipping=4)])
    assert options[0] == {"method": "Express", "cost": 25.0, "currency": "USD", "estimated_days": 3, "service_name": "Express"}
    assert recommended_method(options) == "Budget"
    assert recommended_method(options + shipping_options([quote_factory("Standard")])) == "Standard"
    assert recommended_method([]) == "Standard"


def test_price_applies_tax_on_items_only(fake_catalog, quote_factory):
    fake_catalog.quotes = [quote_factory("Standard", items=100.0, shipping=20.0)]
    service = PricingService(catalog=fake_catalog, use_product_schema=False)

    result = service.price([_line()], "us")

    assert result.subtotal == 100.0
    assert result.shipping == 20.0
    assert result.tax == 8.0
    assert result.total == 128.0
    assert result.currency == "USD"
    assert result.exchange_rate == 1.0
    assert result.estimated_days == 6
    sent = fake_catalog.compare_calls[0]
    assert sent["country"] == "US"
    assert sent["items"][0]["sku"] == "GLOBAL-CFPM-16X20"


def test_price_merges_equivalent_lines(fake_catalog):
    service = PricingService(catalog=fake_catalog, use_product_schema=False)
    service.price([_line(quantity=2, frameColor="black"), _line(quantity=3, frameColor="black")], "US")

    items = fake_catalog.compare_calls[0]["items"]
    assert len(items) == 1
    assert items[0]["copies"] == 5


def test_price_falls_back_to_direct_quote(fake_catalog, quote_factory):
    fake_catalog.compare_error = RuntimeError("compare down")
    fake_catalog.quotes = [quote_factory("Express", items=10, shipping=5)]
    service = PricingService(catalog=fake_catalog, use_product_schema=False)

    result = service.price([_line()], "GB", "Express")

    assert result.shipping_method == "Express"
    assert fake_catalog.quote_calls[0]["shippingMethod"] == "Express"
    assert result.tax == 2.0


def test_price_without_quotes_is_pricing_error(fake_catalog):
    fake_catalog.compare_error = RuntimeError("compare down")
    fake_catalog.quote_error = RuntimeError("quote down")
    service = PricingService(catalog=fake_catalog, use_product_schema=False)

    with pytest.raises(CheckoutError) as exc:
        service.price([_line()], "US")
    assert exc.value.kind == ErrorKind.PRICING
    assert exc.value.code == "NO_QUOTES"
    assert "Traceback" not in str(exc.value.details)


def test_price_empty_quote_lists_are_pricing_error(fake_catalog):
    fake_catalog.quotes = []
    service = PricingService(catalog=fake_catalog, use_product_schema=False)
    with pytest.raises(CheckoutError) as exc:
        service.price([_line()], "US")
    assert exc.value.http_status == 502
    assert len(fake_catalog.quote_calls) == 1


def test_price_converts_each_component(fake_catalog, quote_factory):
    fake_catalog.quotes = [quote_factory("Standard", items=10.0, shipping=10.0)]
    service = PricingService(catalog=fake_catalog, currency=_FixedRates({"USD": 1.0, "EUR": 0.333}), use_product_schema=False)

    result = service.price([_line()], "US", currency="eur")

    # 10 -> 3.33, 10 -> 3.33, 0.80 -> 0.27: total recomputed from converted parts
    assert result.subtotal == 3.33
    assert result.shipping == 3.33
    assert result.tax == 0.27
    assert result.total == 6.93
    assert result.currency == "EUR"
    assert result.original_currency == "USD"
    assert result.original_total == 20.8


def test_price_uses_product_schema_when_available(fake_catalog):
    fake_catalog.schemas = {"GLOBAL-CFPM-16X20": {"color": ["Black"], "mount": ["2.0mm"], "mountColor": ["Snow White"]}}
    service = PricingService(catalog=fake_catalog)

    service.price([_line(frameColor="black")], "US")

    attrs = fake_catalog.compare_calls[0]["items"][0]["attributes"]
    assert attrs == {"color": "Black", "mount": "2.0mm", "mountColor": "Snow White"}


def test_stored_frame_color_reaches_the_quote(fake_catalog):
    product = {"id": "p1", "sku": "GLOBAL-CFPM-16X20-1a2b3c4d", "price": 50.0, "frame_style": "white"}
    line = CartLineItem.from_rows({"id": "ci1", "quantity": 1}, product)

    fake_catalog.schemas = {"GLOBAL-CFPM-16X20": {"color": ["Black", "White"]}}
    PricingService(catalog=fake_catalog).price([line], "US")
    assert fake_catalog.compare_calls[0]["items"][0]["attributes"] == {"color": "White"}

    PricingService(catalog=fake_catalog, use_product_schema=False).price([line], "US")
    assert fake_catalog.compare_calls[1]["items"][0]["attributes"]["color"] == "white"


def test_canvas_quote_gets_lowercase_imagewrap(fake_catalog):
    service = PricingService(catalog=fake_catalog)
    service.price([_line(sku="GLOBAL-CAN-16X20")], "US")
    assert fake_catalog.compare_calls[0]["items"][0]["attributes"] == {"wrap": "imagewrap"}


def test_empty_cart_prices_to_zero(fake_catalog):
    result = PricingService(catalog=fake_catalog).price([], "US")
    assert result.total == 0.0
    assert fake_catalog.compare_calls == []


def test_shipping_options_failure_is_shipping_error(fake_catalog):
    fake_catalog.compare_error = RuntimeError("down")
    fake_catalog.quote_error = RuntimeError("down")
    service = PricingService(catalog=fake_catalog, use_product_schema=False)
    with pytest.raises(CheckoutError) as exc:
        service.shipping_options([_line()], "us")
    assert exc.value.kind == ErrorKind.SHIPPING
    assert exc.value.http_status == 422


def test_validate_prices_flags_mismatch_over_threshold(fake_catalog, quote_factory):
    fake_catalog.quotes = [quote_factory("Standard", items=120.0)]
    service = PricingService(catalog=fake_catalog, use_product_schema=False)

    report = service.validate_prices([_line(quantity=2, price=50.0)], "US")

    assert report["is_valid"] is False
    mismatch = report["mismatches"][0]
    assert mismatch["quoted_price"] == 60.0
    assert mismatch["catalog_price"] == 50.0
    assert mismatch["difference"] == 10.0
    assert mismatch["percent_difference"] == 20.0


def test_validate_prices_within_threshold_and_unavailable(fake_catalog, quote_factory):
    fake_catalog.quotes = [quote_factory("Standard", items=51.0)]
    service = PricingService(catalog=fake_catalog, use_product_schema=False)
    assert service.validate_prices([_line(price=50.0)], "US") == {"is_valid": True, "mismatches": [], "unavailable": []}

    fake_catalog.compare_error = RuntimeError("down")
    fake_catalog.quote_error = RuntimeError("down")
    report = service.validate_prices([_line(price=50.0)], "US")
    assert report["is_valid"] is True
    assert report["unavailable"] == ["line-GLOBAL-CFPM-16X20-1a2b3c4d-1"]


def test_resolve_line_attributes_reports_mode(fake_catalog):
    service = PricingService(catalog=fake_catalog)
    result = service.resolve_line_attributes("GLOBAL-MET-12X12-abcdef12", FrameConfiguration())
    assert result == {"base_sku": "GLOBAL-MET-12X12", "mode": "heuristic", "attributes": {"finish": "high gloss"}}
