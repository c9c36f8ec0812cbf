"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- Toute erreur du SDK est convertie en erreur PAYMENT (jamais de trace amont dans les details)
"""
import logging
from typing import Any, Dict, List, Optional

import stripe
from fastapi import Request

from storefront.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from storefront.errors import payment_error, upstream_details

logger = logging.getLogger(__name__)


def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe


def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    customer_email: Optional[str] = None,
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: lignes price_data (montants en unités mineures)
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": mode,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "payment_method_types": ["card"],
    }
    if customer_email:
        params["customer_email"] = customer_email
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.error("payments.stripe_client.create_session failed: %s", e)
        raise payment_error("Failed to create checkout session", code="STRIPE_SESSION_FAILED", details=upstream_details(e))
    return dict(session)


def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        logger.error("payments.stripe_client.get_session failed session_id=%s: %s", session_id, e)
        raise payment_error("Checkout session not found", code="STRIPE_SESSION_NOT_FOUND", http_status=400, details=upstream_details(e, session_id=session_id))
    return dict(session)


async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Signature ou payload invalide: PAYMENT/INVALID_WEBHOOK (400)
    """
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or request.headers.get("Stripe-Signature")
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("payments.stripe_client.parse_event rejected: %s", e)
        raise payment_error("Invalid Stripe webhook payload", code="INVALID_WEBHOOK", http_status=400, details=upstream_details(e))
    return event
