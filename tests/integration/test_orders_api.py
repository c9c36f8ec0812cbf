import storefront.orders.views as orders_views
import storefront.orders.service as orders_service
from storefront.errors import order_error

ORDER = {"id": "o1", "order_number": "ORD-1-ABCDEFGHI", "user_id": "test-user", "status": "paid", "items": []}


def _not_found(order_id, user_id=None):
    raise order_error("Order not found", code="NOT_FOUND", http_status=404, details={"order_id": order_id})


def test_list_orders(client, monkeypatch):
    seen = {}

    def fake_list(user_id, **kw):
        seen.update(kw, user_id=user_id)
        return [ORDER]

    monkeypatch.setattr(orders_service, "list_orders", fake_list)

    r = client.get("/api/v1/orders", params={"status": "paid", "limit": 5})

    assert r.json() == {"orders": [ORDER], "count": 1}
    assert seen == {"user_id": "test-user", "status": "paid", "limit": 5, "offset": 0}


def test_get_order_scoped_to_user(client, monkeypatch):
    monkeypatch.setattr(orders_service, "get_order", lambda order_id, user_id=None: ORDER if user_id == "test-user" else _not_found(order_id))
    assert client.get("/api/v1/orders/o1").json()["order_number"] == "ORD-1-ABCDEFGHI"


def test_get_missing_order_is_404(client, monkeypatch):
    monkeypatch.setattr(orders_service, "get_order", _not_found)
    r = client.get("/api/v1/orders/ghost")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_sync_checks_ownership_first(client, monkeypatch):
    synced = []
    monkeypatch.setattr(orders_service, "get_order", _not_found)
    monkeypatch.setattr(orders_service, "sync_with_catalog", lambda order_id: synced.append(order_id))

    assert client.post("/api/v1/orders/o1/sync").status_code == 404
    assert synced == []


def test_sync_returns_updated_order(client, monkeypatch):
    monkeypatch.setattr(orders_service, "get_order", lambda order_id, user_id=None: ORDER)
    monkeypatch.setattr(orders_service, "sync_with_catalog", lambda order_id: {**ORDER, "status": "shipped"})
    assert client.post("/api/v1/orders/o1/sync").json()["status"] == "shipped"


def test_manual_status_requires_admin(client):
    r = client.post("/api/v1/orders/o1/status", json={"status": "shipped"})
    assert r.status_code == 401


def test_manual_status_transition(admin_client, monkeypatch):
    seen = {}

    def fake_update(order_id, status, **kw):
        seen.update(kw, order_id=order_id, status=status)
        if status == "processing":
            raise order_error("Invalid order status transition", code="INVALID_TRANSITION", http_status=409,
                              details={"from": "shipped", "to": "processing"})
        return {**ORDER, "status": status}

    monkeypatch.setattr(orders_service, "update_status", fake_update)

    assert admin_client.post("/api/v1/orders/o1/status", json={"status": "shipped"}).json()["status"] == "shipped"
    assert seen["source"] == "manual"

    r = admin_client.post("/api/v1/orders/o1/status", json={"status": "processing"})
    assert r.status_code == 409
    assert r.json()["error"]["details"] == {"from": "shipped", "to": "processing"}


def test_submit_requires_admin(client):
    assert client.post("/api/v1/orders/o1/submit").status_code == 401


def test_admin_submits_order_to_catalog(admin_client, monkeypatch):
    submitted = []
    monkeypatch.setattr(orders_service, "submit_to_catalog",
                        lambda order_id: submitted.append(order_id) or {**ORDER, "status": "processing"})

    r = admin_client.post("/api/v1/orders/o1/submit")

    assert r.status_code == 200
    assert r.json()["status"] == "processing"
    assert submitted == ["o1"]


def test_catalog_callback_updates_order(client, monkeypatch):
    payloads = []
    monkeypatch.setattr(orders_views, "CATALOG_CALLBACK_SECRET", "")
    monkeypatch.setattr(orders_service, "handle_catalog_callback",
                        lambda payload: payloads.append(payload) or {**ORDER, "status": "shipped"})

    body = {"event": "order.complete", "order": {"id": "ord_cat_1", "status": {"stage": "Complete"}}}
    r = client.post("/api/v1/orders/catalog/callback", json=body)

    assert r.json() == {"status": "ok", "order_id": "o1", "order_status": "shipped"}
    assert payloads == [body]


def test_catalog_callback_checks_shared_token(client, monkeypatch):
    monkeypatch.setattr(orders_views, "CATALOG_CALLBACK_SECRET", "s3cret")
    monkeypatch.setattr(orders_service, "handle_catalog_callback", lambda payload: ORDER)
    body = {"order": {"id": "ord_cat_1"}}

    assert client.post("/api/v1/orders/catalog/callback", json=body).status_code == 401
    assert client.post("/api/v1/orders/catalog/callback", json=body, headers={"X-Callback-Token": "nope"}).status_code == 401
    assert client.post("/api/v1/orders/catalog/callback", json=body, headers={"X-Callback-Token": "s3cret"}).status_code == 200


def test_catalog_callback_unknown_order_is_404(client, monkeypatch):
    monkeypatch.setattr(orders_views, "CATALOG_CALLBACK_SECRET", "")

    def not_found(payload):
        raise order_error("Catalog order not found", code="CATALOG_ORDER_NOT_FOUND", http_status=404)

    monkeypatch.setattr(orders_service, "handle_catalog_callback", not_found)
    r = client.post("/api/v1/orders/catalog/callback", json={"order": {"id": "ghost"}})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "CATALOG_ORDER_NOT_FOUND"
