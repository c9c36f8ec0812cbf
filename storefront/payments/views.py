"""Endpoints du checkout Stripe.
- /session: adresse validée, panier coté, session Stripe (authentifié, rate-limité)
- /webhook: checkout.session.completed -> commande créée, panier vidé
- /confirm: alternative sans webhook
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Request, Depends
from pydantic import BaseModel, Field

from storefront.config import BASE_URL, CHECKOUT_SUCCESS_PATH, CHECKOUT_CANCEL_PATH
from storefront.utils.security import require_user
from storefront.utils.rate_limit import optional_rate_limit
from storefront.payments import stripe_client
from storefront.payments import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


class SessionBody(BaseModel):
    shipping_address: Dict[str, Any] = Field(alias="shippingAddress")
    shipping_method: str = Field(default="Standard", alias="shippingMethod")
    currency: Optional[str] = None
    cart_item_ids: Optional[List[str]] = Field(default=None, alias="cartItemIds")

    model_config = {"populate_by_name": True}


def _base_url(request: Request) -> str:
    origin = request.headers.get("origin")
    return (origin or BASE_URL).rstrip("/")


@router.post("/session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_session(body: SessionBody, request: Request, user: Dict[str, Any] = Depends(require_user)):
    base = _base_url(request)
    return payments_service.create_checkout_session(
        user=user,
        shipping_address=body.shipping_address,
        shipping_method=body.shipping_method,
        currency=body.currency,
        cart_item_ids=body.cart_item_ids,
        success_url=f"{base}{CHECKOUT_SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}{CHECKOUT_CANCEL_PATH}",
    )


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    event = await stripe_client.parse_event(request)
    return payments_service.handle_event(event)


@router.get("/confirm")
def confirm_checkout(session_id: str, user: Dict[str, Any] = Depends(require_user)):
    order = payments_service.confirm_session(session_id, user["id"])
    return {"status": "ok", "order": order}
