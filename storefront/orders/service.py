"""
Cas d'usage 'orders': création depuis le panier payé, consultation, statuts et synchronisation catalogue.

- Le statut ne progresse que vers l'avant; chaque changement ajoute une ligne d'historique
- La synchronisation mappe l'étape catalogue via une table fixe (inconnue -> processing)
"""
from typing import Any, Dict, List, Optional
import logging
import random
import string
import time

from storefront.errors import order_error, upstream_details
from storefront.attributes.models import FrameConfiguration
from storefront.attributes.resolver import resolve_attributes
from storefront.cart import repository as cart_repository
from storefront.catalog.client import get_catalog_client
from storefront.pricing.sku import extract_base_sku
from . import repository
from .status import OrderStatus, can_transition, map_catalog_stage, parse_status

logger = logging.getLogger(__name__)

ORDER_ASSET_PRINT_AREA = "Default"


def generate_order_number() -> str:
    """ORD-<epoch ms>-<9 caractères alphanumériques majuscules>."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def format_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """Vue API d'une commande (montants en float, fournisseur aplati)."""
    metadata = row.get("metadata") or {}
    dropship = (row.get("dropship_orders") or [None])[0] or {}
    items = []
    for it in row.get("order_items") or []:
        product = it.get("products") or {}
        items.append({
            "id": it.get("id"),
            "product_id": it.get("product_id"),
            "sku": product.get("sku") or "",
            "name": product.get("name") or "Framed Print",
            "image_url": product.get("image_url") or "",
            "quantity": int(it.get("quantity") or 0),
            "unit_price": _as_float(it.get("unit_price")),
            "total_price": _as_float(it.get("total_price")),
        })
    return {
        "id": row.get("id"),
        "order_number": row.get("order_number"),
        "user_id": row.get("user_id"),
        "status": row.get("status"),
        "payment_status": row.get("payment_status"),
        "customer_email": row.get("customer_email"),
        "shipping_address": row.get("shipping_address"),
        "billing_address": row.get("billing_address") or row.get("shipping_address"),
        "shipping_method": row.get("shipping_method") or "Standard",
        "items": items,
        "pricing": {
            "subtotal": _as_float(row.get("subtotal")),
            "shipping": _as_float(row.get("shipping_amount")),
            "tax": _as_float(row.get("tax_amount")),
            "total": _as_float(row.get("total_amount")),
            "currency": row.get("currency") or "USD",
            "original_currency": metadata.get("original_currency"),
            "original_total": metadata.get("original_total"),
            "exchange_rate": metadata.get("exchange_rate"),
        },
        "fulfillment": {
            "provider_order_id": dropship.get("provider_order_id"),
            "status": dropship.get("status"),
            "tracking_number": dropship.get("tracking_number"),
            "tracking_url": dropship.get("tracking_url"),
            "estimated_delivery": dropship.get("estimated_delivery"),
        } if dropship else None,
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at") or row.get("created_at"),
    }


def create_order(
    *,
    user_id: str,
    cart: Dict[str, Any],
    session: Dict[str, Any],
    shipping_address: Dict[str, Any],
    billing_address: Optional[Dict[str, Any]] = None,
    shipping_method: str = "Standard",
) -> Dict[str, Any]:
    """
    Crée la commande payée à partir du panier et de la session Stripe.
    - Idempotent par stripe_session_id (webhook rejoué)
    - Copie les lignes en order_items, une ligne dropship par article, historique initial
    - Vide le panier (un échec de vidage est loggé, pas bloquant)
    """
    session_id = str(session.get("id") or "")
    if session_id:
        existing = repository.find_order_by_session(session_id)
        if existing:
            logger.info("orders.create_order already exists session_id=%s", session_id)
            return format_order(existing)

    items = cart.get("items") or []
    if not items:
        raise order_error("Cannot create an order from an empty cart", code="EMPTY_CART", http_status=400)

    totals = cart.get("totals") or {}
    customer = session.get("customer_details") or {}
    order = repository.insert_order({
        "order_number": generate_order_number(),
        "user_id": user_id,
        "stripe_session_id": session_id or None,
        "stripe_payment_intent_id": session.get("payment_intent"),
        "status": OrderStatus.PAID.value,
        "payment_status": "paid",
        "customer_email": session.get("customer_email") or customer.get("email") or "",
        "customer_name": customer.get("name"),
        "customer_phone": customer.get("phone"),
        "shipping_address": shipping_address,
        "billing_address": billing_address or shipping_address,
        "shipping_method": shipping_method,
        "subtotal": totals.get("subtotal", 0),
        "tax_amount": totals.get("tax", 0),
        "shipping_amount": totals.get("shipping", 0),
        "total_amount": totals.get("total", 0),
        "currency": totals.get("currency", "USD"),
        "metadata": {
            "stripe_session_id": session_id,
            "original_currency": totals.get("original_currency"),
            "original_total": totals.get("original_total"),
            "exchange_rate": totals.get("exchange_rate"),
        },
    })
    if not order:
        raise order_error("Failed to create order", code="ORDER_WRITE_FAILED")

    order_id = str(order.get("id"))
    rows = [
        {
            "order_id": order_id,
            "product_id": it.get("product_id"),
            "quantity": it.get("quantity"),
            "unit_price": it.get("price"),
            "total_price": round(_as_float(it.get("price")) * int(it.get("quantity") or 0), 2),
        }
        for it in items
    ]
    created_items = repository.insert_order_items(rows)
    if not created_items:
        raise order_error("Failed to create order items", code="ORDER_WRITE_FAILED", details={"order_id": order_id})

    for it in created_items:
        repository.insert_dropship_order(order_id=order_id, order_item_id=str(it.get("id")))
    repository.insert_status_history(order_id=order_id, status=OrderStatus.PAID.value, previous_status=None, source="checkout")

    if not cart_repository.clear_cart_rows(user_id):
        logger.warning("orders.create_order cart not cleared user_id=%s order_id=%s", user_id, order_id)

    logger.info("orders.create_order order_id=%s items=%s user_id=%s", order_id, len(created_items), user_id)
    return get_order(order_id)


def get_order(order_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    """Commande complète; ORDER/NOT_FOUND (404) si absente ou appartenant à un autre utilisateur."""
    row = repository.get_order(order_id)
    if not row or (user_id and str(row.get("user_id")) != str(user_id)):
        raise order_error("Order not found", code="NOT_FOUND", http_status=404, details={"order_id": order_id})
    return format_order(row)


def list_orders(user_id: str, *, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    limit = max(1, min(int(limit or 50), 100))
    offset = max(0, int(offset or 0))
    return [format_order(r) for r in repository.list_orders(user_id, status=status, limit=limit, offset=offset)]


def update_status(order_id: str, status: str, *, source: str = "system", strict: bool = True) -> Dict[str, Any]:
    """
    Applique une transition de statut et ajoute l'historique (status, previous_status, source).
    - strict=True: transition refusée -> ORDER/INVALID_TRANSITION (409)
    - strict=False: transition refusée loggée, commande renvoyée inchangée
    """
    new_status = parse_status(status)
    if new_status is None:
        raise order_error("Unknown order status", code="INVALID_STATUS", http_status=400, details={"status": str(status)})

    row = repository.get_order(order_id)
    if not row:
        raise order_error("Order not found", code="NOT_FOUND", http_status=404, details={"order_id": order_id})

    previous_raw = row.get("status")
    previous = parse_status(previous_raw)
    if not can_transition(previous, new_status):
        if strict:
            raise order_error(
                "Invalid order status transition",
                code="INVALID_TRANSITION",
                http_status=409,
                details={"from": previous_raw, "to": new_status.value},
            )
        logger.info("orders.update_status ignored %s -> %s order_id=%s source=%s", previous_raw, new_status.value, order_id, source)
        return format_order(row)

    if not repository.update_order_status(order_id, new_status.value):
        raise order_error("Failed to update order status", code="ORDER_WRITE_FAILED", details={"order_id": order_id})
    repository.insert_status_history(order_id=order_id, status=new_status.value, previous_status=previous_raw, source=source)
    logger.info("orders.update_status %s -> %s order_id=%s source=%s", previous_raw, new_status.value, order_id, source)
    return get_order(order_id)


def _tracking(catalog_order: Dict[str, Any]) -> Dict[str, Any]:
    number = catalog_order.get("trackingNumber")
    url = catalog_order.get("trackingUrl")
    for shipment in catalog_order.get("shipments") or []:
        tracking = (shipment or {}).get("tracking") or {}
        number = number or tracking.get("number")
        url = url or tracking.get("url")
    return {"tracking_number": number, "tracking_url": url, "estimated_delivery": catalog_order.get("estimatedDelivery")}


def sync_with_catalog(order_id: str) -> Dict[str, Any]:
    """
    Récupère le statut de la commande chez le fournisseur et l'applique.
    - Repli sur la dernière réponse stockée si le fournisseur est injoignable
    - Transition arrière ignorée (jamais bloquante)
    """
    dropship = repository.get_dropship_order(order_id)
    if not dropship or not dropship.get("provider_order_id"):
        raise order_error("Catalog order not found", code="CATALOG_ORDER_NOT_FOUND", http_status=404, details={"order_id": order_id})

    provider_id = str(dropship["provider_order_id"])
    try:
        catalog_order = get_catalog_client().get_order(provider_id)
    except Exception as e:
        catalog_order = dropship.get("provider_response")
        if not catalog_order:
            raise order_error(
                "Catalog order status not available",
                code="CATALOG_STATUS_UNAVAILABLE",
                http_status=502,
                details=upstream_details(e, order_id=order_id),
            )
        logger.warning("orders.sync_with_catalog using stored response order_id=%s: %s", order_id, e)

    return _apply_catalog_order(order_id, catalog_order)


def _catalog_stage(catalog_order: Dict[str, Any]) -> Optional[str]:
    status = (catalog_order or {}).get("status")
    if isinstance(status, dict):
        return status.get("stage")
    return status


def _apply_catalog_order(order_id: str, catalog_order: Dict[str, Any]) -> Dict[str, Any]:
    """Enregistre la réponse fournisseur et applique l'étape mappée (transition arrière ignorée)."""
    new_status = map_catalog_stage(_catalog_stage(catalog_order))
    repository.update_dropship_orders(order_id, {
        "status": new_status.value,
        "provider_response": catalog_order,
        **_tracking(catalog_order),
    })
    return update_status(order_id, new_status.value, source="catalog", strict=False)


def handle_catalog_callback(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Callback de statut du fournisseur: {"event", "order": {"id", "status": {"stage"}, "shipments"}}.
    - ORDER/INVALID_CALLBACK (400) sans identifiant de commande fournisseur
    - ORDER/CATALOG_ORDER_NOT_FOUND (404) si aucune commande locale ne correspond
    """
    catalog_order = (payload or {}).get("order") or (payload or {}).get("data") or {}
    provider_id = catalog_order.get("id")
    if not provider_id:
        raise order_error("Callback without catalog order id", code="INVALID_CALLBACK", http_status=400)

    dropship = repository.find_dropship_by_provider_id(str(provider_id))
    if not dropship:
        raise order_error(
            "Catalog order not found",
            code="CATALOG_ORDER_NOT_FOUND",
            http_status=404,
            details={"provider_order_id": provider_id},
        )
    order_id = str(dropship["order_id"])
    logger.info("orders.handle_catalog_callback event=%s provider_order_id=%s order_id=%s", payload.get("event"), provider_id, order_id)
    return _apply_catalog_order(order_id, catalog_order)


def build_catalog_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """
    Payload de commande fournisseur.
    - SKU de base, sizing fillPrintArea, attributs résolus, asset {printArea: "Default", url}
    """
    address = order.get("shipping_address") or {}
    billing = order.get("billing_address") or address
    name = f"{address.get('first_name') or ''} {address.get('last_name') or ''}".strip() or "Customer"

    def _address(a: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "line1": a.get("address1") or "",
            "line2": a.get("address2"),
            "postalOrZipCode": a.get("zip") or "",
            "countryCode": a.get("country") or "",
            "townOrCity": a.get("city") or "",
            "stateOrCounty": a.get("state"),
        }

    row = repository.get_order(order["id"]) or {}
    products = {str(it.get("id")): it.get("products") or {} for it in row.get("order_items") or []}
    items = []
    for it in order.get("items") or []:
        product = products.get(str(it.get("id")), {})
        base_sku = extract_base_sku(it.get("sku") or "")
        items.append({
            "merchantReference": f"item-{it.get('id')}",
            "sku": base_sku,
            "copies": it.get("quantity"),
            "sizing": "fillPrintArea",
            "attributes": resolve_attributes(FrameConfiguration.from_row(product), base_sku),
            "assets": [{"printArea": ORDER_ASSET_PRINT_AREA, "url": it.get("image_url") or ""}],
        })
    return {
        "merchantReference": order.get("order_number"),
        "shippingMethod": order.get("shipping_method") or "Standard",
        "recipient": {
            "name": name,
            "email": order.get("customer_email"),
            "phoneNumber": address.get("phone"),
            "address": _address(address),
        },
        "billingAddress": {"name": name, "address": _address(billing)},
        "items": items,
        "metadata": {"orderNumber": order.get("order_number") or ""},
    }


def submit_to_catalog(order_id: str) -> Dict[str, Any]:
    """
    Transmet la commande au fournisseur et enregistre son identifiant.
    - ORDER/ALREADY_SUBMITTED (409) si un identifiant fournisseur est déjà enregistré
    """
    order = get_order(order_id)
    dropship = repository.get_dropship_order(order_id) or {}
    if dropship.get("provider_order_id"):
        raise order_error(
            "Order already submitted to catalog",
            code="ALREADY_SUBMITTED",
            http_status=409,
            details={"order_id": order_id, "provider_order_id": dropship["provider_order_id"]},
        )
    payload = build_catalog_order(order)
    try:
        created = get_catalog_client().create_order(payload)
    except Exception as e:
        logger.error("orders.submit_to_catalog failed order_id=%s: %s", order_id, e)
        raise order_error("Failed to submit order to catalog", code="CATALOG_SUBMIT_FAILED", http_status=502, details=upstream_details(e, order_id=order_id))

    status = map_catalog_stage(_catalog_stage(created) or "InProgress")
    repository.update_dropship_orders(order_id, {
        "provider_order_id": created.get("id"),
        "status": status.value,
        "provider_response": created,
    })
    return update_status(order_id, status.value, source="catalog", strict=False)
