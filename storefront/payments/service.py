"""
Cas d'usage 'payments': session Stripe depuis le panier, webhook et confirmation sans webhook.

Flux:
1) create_checkout_session: adresse validée, panier coté en temps réel, session Stripe
2) checkout.session.completed (webhook) ou /confirm: création de la commande, panier vidé
"""
from typing import Any, Dict, List, Optional, Sequence
import logging

from storefront.errors import cart_error, payment_error
from storefront.address.service import require_valid_address
from storefront.cart import service as cart_service
from storefront.cart.models import CartLineItem
from storefront.currency.service import get_currency_service, to_minor_units
from storefront.orders import service as orders_service
from storefront.pricing.service import get_pricing_service
from . import stripe_client
from . import metadata as meta

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"


def _price_line(name: str, description: str, amount: float, currency: str, quantity: int = 1,
                extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    product_data: Dict[str, Any] = {"name": name, "description": description}
    if extra:
        product_data.update(extra)
    return {
        "price_data": {
            "currency": currency.lower(),
            "product_data": product_data,
            "unit_amount": to_minor_units(amount, currency),
        },
        "quantity": quantity,
    }


def build_line_items(items: Sequence[CartLineItem], totals: Dict[str, Any], shipping_method: str) -> List[Dict[str, Any]]:
    """
    Lignes Stripe en unités mineures de la devise d'affichage.
    - Une ligne par article (prix unitaire USD converti)
    - Lignes 'Shipping' et 'Tax' seulement si positives
    """
    currency = str(totals.get("currency") or "USD").upper()
    converter = get_currency_service()
    lines: List[Dict[str, Any]] = []
    for item in items:
        unit = item.price if currency == "USD" else converter.convert(item.price, "USD", currency)
        name = item.name or "Framed Print"
        extra: Dict[str, Any] = {
            "metadata": {
                "product_id": item.product_id,
                "sku": item.sku,
                "frame_size": item.frame_config.size or "",
                "price_usd": str(item.original_price),
            },
        }
        if item.image_url:
            extra["images"] = [item.image_url]
        lines.append(_price_line(name, f"Framed print: {name}", unit, currency, item.quantity, extra))

    shipping = float(totals.get("shipping") or 0)
    if shipping > 0:
        lines.append(_price_line("Shipping", f"{shipping_method} shipping", shipping, currency))
    tax = float(totals.get("tax") or 0)
    if tax > 0:
        lines.append(_price_line("Tax", "Sales tax", tax, currency))
    return lines


def create_checkout_session(
    *,
    user: Dict[str, Any],
    shipping_address: Dict[str, Any],
    success_url: str,
    cancel_url: str,
    shipping_method: str = "Standard",
    currency: Optional[str] = None,
    cart_item_ids: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Crée la session Stripe pour le panier de l'utilisateur.
    - ADDRESS (422) si l'adresse est invalide, sans appel amont
    - CART/EMPTY_CART (400) si aucune ligne retenue
    - Le prix doit être frais: un échec de devis remonte tel quel (PRICING)
    Retour: {"id", "url"}
    """
    address = require_valid_address(shipping_address)
    user_id = str(user.get("id") or "")

    items = cart_service.list_items(user_id)
    if cart_item_ids:
        wanted = {str(i) for i in cart_item_ids}
        items = [i for i in items if i.id in wanted]
    if not items:
        raise cart_error("No valid cart items found", code="EMPTY_CART")

    totals = get_pricing_service().price(items, address["country"], shipping_method, currency).model_dump()
    line_items = build_line_items(items, totals, shipping_method)
    metadata = meta.make_metadata(
        user_id=user_id,
        totals=totals,
        shipping_method=shipping_method,
        shipping_address=address,
    )
    session = stripe_client.create_session(
        line_items=line_items,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        customer_email=user.get("email") or address.get("email") or None,
    )
    logger.info("payments.create_checkout_session user_id=%s lines=%s total=%s %s", user_id, len(line_items), totals["total"], totals["currency"])
    return {"id": session.get("id"), "url": session.get("url")}


def complete_session(session: Dict[str, Any]) -> Dict[str, Any]:
    """
    Crée la commande d'une session payée (idempotent par identifiant de session).
    - Montants repris des métadonnées: la commande reflète ce qui a été débité
    """
    data = meta.parse_metadata(session.get("metadata"))
    user_id = data.get("user_id")
    if not user_id:
        raise payment_error("Checkout session has no user", code="MISSING_METADATA", http_status=400, details={"session_id": session.get("id")})

    items = cart_service.list_items(user_id)
    cart = {
        "items": [i.model_dump() for i in items],
        "totals": {
            "subtotal": data["subtotal"],
            "shipping": data["shipping"],
            "tax": data["tax"],
            "total": data["total"],
            "currency": data["currency"],
            "original_currency": data["original_currency"],
            "original_total": data["original_total"],
            "exchange_rate": data["exchange_rate"],
        },
    }
    return orders_service.create_order(
        user_id=user_id,
        cart=cart,
        session=session,
        shipping_address=data["shipping_address"],
        shipping_method=data["shipping_method"],
    )


def handle_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Webhook: seul checkout.session.completed est consommé, le reste est ignoré.
    """
    if (event or {}).get("type") != COMPLETED_EVENT:
        return {"status": "ignored"}
    session = ((event.get("data") or {}).get("object")) or {}
    if session.get("payment_status") not in (None, "paid"):
        logger.info("payments.handle_event unpaid session_id=%s status=%s", session.get("id"), session.get("payment_status"))
        return {"status": "ignored"}
    order = complete_session(session)
    logger.info("payments.handle_event order_id=%s session_id=%s", order.get("id"), session.get("id"))
    return {"status": "ok", "order_id": order.get("id")}


def confirm_session(session_id: str, current_user_id: str) -> Dict[str, Any]:
    """
    Alternative sans webhook: vérifie la session puis crée la commande.
    - PAYMENT/PAYMENT_NOT_CONFIRMED (400) si payment_status != 'paid'
    - PAYMENT/FORBIDDEN (403) si la session appartient à un autre utilisateur
    """
    session = stripe_client.get_session(session_id)
    payment_status = session.get("payment_status") or ""
    if payment_status != "paid":
        raise payment_error(
            "Payment not confirmed",
            code="PAYMENT_NOT_CONFIRMED",
            http_status=400,
            details={"payment_status": payment_status},
        )
    owner = (session.get("metadata") or {}).get("user_id")
    if owner and str(owner) != str(current_user_id):
        raise payment_error("Session belongs to another user", code="FORBIDDEN", http_status=403)
    return complete_session(session)
