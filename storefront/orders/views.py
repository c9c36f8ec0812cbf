"""Endpoints commandes (authentifié).
- Lecture limitée aux commandes de l'utilisateur
- /sync: synchronise le statut avec le fournisseur (jamais de retour arrière)
- /status: transition manuelle (admin), refusée si elle n'avance pas la commande
- /submit: transmission au fournisseur (admin)
- /catalog/callback: statut poussé par le fournisseur
"""
from typing import Any, Dict, Optional
import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from storefront.config import CATALOG_CALLBACK_SECRET
from storefront.utils.security import require_user, require_admin
from storefront.utils.rate_limit import optional_rate_limit
from storefront.orders import service as orders_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


class StatusBody(BaseModel):
    status: str


@router.get("")
def list_orders(
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    user: Dict[str, Any] = Depends(require_user),
):
    orders = orders_service.list_orders(user["id"], status=status, limit=limit, offset=offset)
    return {"orders": orders, "count": len(orders)}


@router.post("/catalog/callback", include_in_schema=False)
def catalog_callback(payload: Dict[str, Any], x_callback_token: Optional[str] = Header(default=None)):
    if CATALOG_CALLBACK_SECRET:
        if not x_callback_token or not hmac.compare_digest(x_callback_token, CATALOG_CALLBACK_SECRET):
            raise HTTPException(status_code=401, detail="Invalid callback token")
    else:
        logger.warning("orders.catalog_callback accepted without token check")
    order = orders_service.handle_catalog_callback(payload)
    return {"status": "ok", "order_id": order.get("id"), "order_status": order.get("status")}


@router.get("/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return orders_service.get_order(order_id, user_id=user["id"])


@router.post("/{order_id}/sync", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def sync_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    orders_service.get_order(order_id, user_id=user["id"])
    return orders_service.sync_with_catalog(order_id)


@router.post("/{order_id}/status")
def update_status(order_id: str, body: StatusBody, admin: Dict[str, Any] = Depends(require_admin)):
    return orders_service.update_status(order_id, body.status, source="manual")


@router.post("/{order_id}/submit")
def submit_order(order_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    return orders_service.submit_to_catalog(order_id)
