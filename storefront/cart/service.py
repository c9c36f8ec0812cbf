"""
Cas d'usage 'cart': orchestre repository et pricing.

Règle centrale: le prix temps réel est tenté à chaque mutation mais ne fait JAMAIS échouer
la mutation. En cas d'échec, le prix catalogue stocké est utilisé et pricing_stale=True.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from storefront.config import DEFAULT_COUNTRY, DEFAULT_SHIPPING_METHOD, CART_MIN_QUANTITY
from storefront.errors import cart_error
from storefront.pricing.service import get_pricing_service
from . import repository
from .models import CartLineItem, clamp_quantity

logger = logging.getLogger(__name__)


def _line_from_row(row: Dict[str, Any]) -> CartLineItem:
    return CartLineItem.from_rows(row, row.get("products"))


def _realtime_unit_price(line: CartLineItem) -> Tuple[float, bool]:
    """
    Prix unitaire temps réel (pays US, méthode Standard): sous-total / quantité.
    Retour: (prix, stale) avec repli sur le prix catalogue si le devis échoue.
    """
    try:
        result = get_pricing_service().price([line], DEFAULT_COUNTRY, DEFAULT_SHIPPING_METHOD, "USD")
        if result.subtotal > 0 and line.quantity:
            return round(result.subtotal / line.quantity, 2), False
        logger.warning("cart.realtime_unit_price empty subtotal sku=%s, using catalog price", line.sku)
    except Exception as e:
        logger.warning("cart.realtime_unit_price failed sku=%s, using catalog price: %s", line.sku, e)
    return line.original_price, True


def _item_payload(line: CartLineItem, stale: bool) -> Dict[str, Any]:
    return {"item": line.model_dump(), "pricing_stale": stale}


def add_item(*, user_id: str, product_id: str, quantity: int = 1) -> Dict[str, Any]:
    """
    Ajoute un produit au panier (ou augmente la quantité de la ligne existante).
    - Quantité bornée à [1, 10]
    - CART/PRODUCT_NOT_FOUND (404) si le produit n'existe pas
    """
    product = repository.get_product(product_id)
    if not product:
        raise cart_error("Product not found", code="PRODUCT_NOT_FOUND", http_status=404, details={"product_id": product_id})

    existing = repository.find_cart_row(user_id, product_id)
    requested = clamp_quantity(quantity)
    if existing:
        new_qty = clamp_quantity(int(existing.get("quantity") or 0) + requested)
        line = CartLineItem.from_rows({**existing, "quantity": new_qty}, product)
    else:
        line = CartLineItem.from_rows({"product_id": product_id, "quantity": requested}, product)

    unit_price, stale = _realtime_unit_price(line)
    if existing:
        row = repository.update_cart_row(user_id=user_id, item_id=str(existing.get("id")), quantity=line.quantity, price=unit_price)
    else:
        row = repository.insert_cart_row(user_id=user_id, product_id=product_id, quantity=line.quantity, price=unit_price)
    if not row:
        raise cart_error("Failed to add item to cart", code="CART_WRITE_FAILED", details={"product_id": product_id})

    saved = CartLineItem.from_rows(row, product)
    logger.info("cart.add_item user_id=%s product_id=%s quantity=%s stale=%s", user_id, product_id, saved.quantity, stale)
    return _item_payload(saved, stale)


def update_quantity(*, user_id: str, item_id: str, quantity: int) -> Dict[str, Any]:
    """
    Met à jour la quantité d'une ligne.
    - quantity < 1 équivaut à remove_item
    - sinon bornée à [1, 10], prix retenté sans jamais bloquer la mise à jour
    """
    try:
        wanted = int(quantity)
    except (TypeError, ValueError):
        raise cart_error("Invalid quantity", code="INVALID_QUANTITY", details={"quantity": str(quantity)})
    if wanted < CART_MIN_QUANTITY:
        remove_item(user_id=user_id, item_id=item_id)
        return {"item": None, "removed": True, "pricing_stale": False}

    row = repository.get_cart_row(user_id, item_id)
    if not row:
        raise cart_error("Cart item not found", code="ITEM_NOT_FOUND", http_status=404, details={"item_id": item_id})

    product = row.get("products")
    line = CartLineItem.from_rows({**row, "quantity": clamp_quantity(wanted)}, product)
    unit_price, stale = _realtime_unit_price(line)
    updated = repository.update_cart_row(user_id=user_id, item_id=item_id, quantity=line.quantity, price=unit_price)
    if not updated:
        raise cart_error("Failed to update cart item", code="CART_WRITE_FAILED", details={"item_id": item_id})
    return _item_payload(CartLineItem.from_rows(updated, product), stale)


def remove_item(*, user_id: str, item_id: str) -> bool:
    if not repository.delete_cart_row(user_id=user_id, item_id=item_id):
        raise cart_error("Cart item not found", code="ITEM_NOT_FOUND", http_status=404, details={"item_id": item_id})
    logger.info("cart.remove_item user_id=%s item_id=%s", user_id, item_id)
    return True


def clear_cart(user_id: str) -> bool:
    if not repository.clear_cart_rows(user_id):
        raise cart_error("Failed to clear cart", code="CART_WRITE_FAILED")
    return True


def list_items(user_id: str) -> List[CartLineItem]:
    return [_line_from_row(r) for r in repository.fetch_cart_rows(user_id)]


def _fallback_totals(items: List[CartLineItem]) -> Dict[str, Any]:
    subtotal = round(sum(i.price * i.quantity for i in items), 2)
    return {
        "subtotal": subtotal,
        "shipping": 0.0,
        "tax": 0.0,
        "total": subtotal,
        "currency": "USD",
        "original_currency": "USD",
        "original_total": subtotal,
        "exchange_rate": 1.0,
        "shipping_method": DEFAULT_SHIPPING_METHOD,
        "estimated_days": None,
    }


def get_cart(
    user_id: str,
    *,
    country: str = DEFAULT_COUNTRY,
    shipping_method: Optional[str] = None,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Panier + totaux.
    - Totaux temps réel si possible; sinon somme prix x quantité, port 0, taxe 0, USD (pricing_stale=True)
    """
    items = list_items(user_id)
    stale = False
    if not items:
        totals = _fallback_totals(items)
    else:
        try:
            totals = get_pricing_service().price(items, country, shipping_method, currency).model_dump()
        except Exception as e:
            logger.warning("cart.get_cart pricing failed user_id=%s, stored prices: %s", user_id, e)
            totals = _fallback_totals(items)
            stale = True
    return {
        "items": [i.model_dump() for i in items],
        "item_count": sum(i.quantity for i in items),
        "totals": totals,
        "pricing_stale": stale,
    }


def validate_prices(user_id: str, country: str = DEFAULT_COUNTRY) -> Dict[str, Any]:
    return get_pricing_service().validate_prices(list_items(user_id), country)
