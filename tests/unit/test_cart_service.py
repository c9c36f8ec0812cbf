import pytest

from storefront.cart import repository
from storefront.cart import service as cart_service
from storefront.cart.models import CartLineItem, clamp_quantity
from storefront.errors import CheckoutError, ErrorKind
from storefront.pricing.models import PricingResult

PRODUCT = {"id": "p1", "sku": "GLOBAL-CFPM-16X20-1a2b3c4d", "name": "Sunset", "price": 50.0, "frame_style": "black"}


class FakePricing:
    def __init__(self, unit=42.0, error=None):
        self.unit = unit
        self.error = error
        self.calls = []

    def price(self, items, country, method=None, currency=None):
        self.calls.append((list(items), country, method, currency))
        if self.error:
            raise self.error
        subtotal = sum(self.unit * i.quantity for i in items)
        return PricingResult(
            subtotal=subtotal, shipping=10.0, tax=0.0, total=subtotal + 10.0,
            currency="USD", original_currency="USD", original_total=subtotal + 10.0,
            exchange_rate=1.0, shipping_method="Standard", estimated_days=6,
        )


@pytest.fixture
def rows(monkeypatch):
    """Table 'cart_items' en mémoire branchée sur le repository."""
    store = {}

    def insert_cart_row(*, user_id, product_id, quantity, price):
        row = {"id": f"ci{len(store) + 1}", "user_id": user_id, "product_id": product_id, "quantity": quantity, "price": price}
        store[row["id"]] = row
        return dict(row)

    def update_cart_row(*, user_id, item_id, quantity, price):
        row = store.get(item_id)
        if not row:
            return None
        row.update(quantity=quantity, price=price)
        return dict(row)

    def delete_cart_row(*, user_id, item_id):
        return store.pop(item_id, None) is not None

    def find_cart_row(user_id, product_id):
        for row in store.values():
            if row["user_id"] == user_id and row["product_id"] == product_id:
                return dict(row)
        return None

    def get_cart_row(user_id, item_id):
        row = store.get(item_id)
        return {**row, "products": PRODUCT} if row else None

    def fetch_cart_rows(user_id):
        return [{**r, "products": PRODUCT} for r in store.values() if r["user_id"] == user_id]

    monkeypatch.setattr(repository, "get_product", lambda pid: PRODUCT if pid == "p1" else None)
    monkeypatch.setattr(repository, "insert_cart_row", insert_cart_row)
    monkeypatch.setattr(repository, "update_cart_row", update_cart_row)
    monkeypatch.setattr(repository, "delete_cart_row", delete_cart_row)
    monkeypatch.setattr(repository, "find_cart_row", find_cart_row)
    monkeypatch.setattr(repository, "get_cart_row", get_cart_row)
    monkeypatch.setattr(repository, "fetch_cart_rows", fetch_cart_rows)
    monkeypatch.setattr(repository, "clear_cart_rows", lambda user_id: store.clear() is None)
    return store


@pytest.fixture
def pricing(monkeypatch):
    fake = FakePricing()
    monkeypatch.setattr(cart_service, "get_pricing_service", lambda: fake)
    return fake


@pytest.mark.parametrize("value,expected", [(0, 1), (-3, 1), (5, 5), (10, 10), (11, 10), ("abc", 1), (None, 1)])
def test_clamp_quantity(value, expected):
    assert clamp_quantity(value) == expected


def test_line_item_from_rows_uses_stored_price_then_catalog():
    line = CartLineItem.from_rows({"id": "ci1", "quantity": 2, "price": 0}, PRODUCT)
    assert line.price == 50.0
    assert line.original_price == 50.0
    assert line.frame_config.frame_style == "black"
    assert line.product_id == "p1"


def test_add_item_prices_in_realtime(rows, pricing):
    payload = cart_service.add_item(user_id="u1", product_id="p1", quantity=2)

    assert payload["pricing_stale"] is False
    assert payload["item"]["price"] == 42.0
    assert payload["item"]["quantity"] == 2
    _, country, method, currency = pricing.calls[0]
    assert (country, method, currency) == ("US", "Standard", "USD")


def test_add_item_survives_pricing_failure(rows, pricing):
    pricing.error = RuntimeError("catalog down")

    payload = cart_service.add_item(user_id="u1", product_id="p1", quantity=1)

    assert payload["pricing_stale"] is True
    assert payload["item"]["price"] == 50.0
    assert len(rows) == 1


def test_add_item_merges_and_clamps_existing_line(rows, pricing):
    cart_service.add_item(user_id="u1", product_id="p1", quantity=7)
    payload = cart_service.add_item(user_id="u1", product_id="p1", quantity=7)

    assert payload["item"]["quantity"] == 10
    assert len(rows) == 1


def test_add_unknown_product_is_not_found(rows, pricing):
    with pytest.raises(CheckoutError) as exc:
        cart_service.add_item(user_id="u1", product_id="nope")
    assert exc.value.kind == ErrorKind.CART
    assert exc.value.code == "PRODUCT_NOT_FOUND"
    assert exc.value.http_status == 404


def test_update_quantity_below_one_removes(rows, pricing):
    item_id = cart_service.add_item(user_id="u1", product_id="p1")["item"]["id"]

    result = cart_service.update_quantity(user_id="u1", item_id=item_id, quantity=0)

    assert result["removed"] is True
    assert rows == {}


def test_update_quantity_clamps_and_reprices(rows, pricing):
    item_id = cart_service.add_item(user_id="u1", product_id="p1")["item"]["id"]
    pricing.unit = 40.0

    result = cart_service.update_quantity(user_id="u1", item_id=item_id, quantity=25)

    assert result["item"]["quantity"] == 10
    assert result["item"]["price"] == 40.0


def test_update_missing_item_is_not_found(rows, pricing):
    with pytest.raises(CheckoutError) as exc:
        cart_service.update_quantity(user_id="u1", item_id="ghost", quantity=2)
    assert exc.value.code == "ITEM_NOT_FOUND"


def test_remove_missing_item_is_not_found(rows):
    with pytest.raises(CheckoutError):
        cart_service.remove_item(user_id="u1", item_id="ghost")


def test_get_cart_uses_realtime_totals(rows, pricing):
    cart_service.add_item(user_id="u1", product_id="p1", quantity=2)

    cart = cart_service.get_cart("u1", country="GB")

    assert cart["pricing_stale"] is False
    assert cart["item_count"] == 2
    assert cart["totals"]["total"] == 94.0
    assert pricing.calls[-1][1] == "GB"


def test_get_cart_falls_back_to_stored_prices(rows, pricing):
    cart_service.add_item(user_id="u1", product_id="p1", quantity=3)
    pricing.error = RuntimeError("catalog down")

    cart = cart_service.get_cart("u1")

    assert cart["pricing_stale"] is True
    totals = cart["totals"]
    assert totals["subtotal"] == 126.0
    assert totals["shipping"] == 0.0
    assert totals["tax"] == 0.0
    assert totals["total"] == 126.0
    assert totals["currency"] == "USD"


def test_get_empty_cart_does_not_price(rows, pricing):
    cart = cart_service.get_cart("nobody")
    assert cart["items"] == []
    assert cart["totals"]["total"] == 0.0
    assert pricing.calls == []
