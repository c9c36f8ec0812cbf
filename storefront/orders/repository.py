"""
Accès aux données pour la feature 'orders'.
Tables: orders, order_items, dropship_orders, order_status_history.
"""
from typing import Any, Dict, List, Optional
import logging
from datetime import datetime, timezone

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ORDER_SELECT = "*, order_items(*, products(*)), dropship_orders(*)"
PROVIDER = "prodigi"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def insert_order(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(data).execute()
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.insert_order failed order_number=%s", data.get("order_number"))
        return None


def insert_order_items(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not rows:
        return []
    try:
        res = supabase_client.get_service_supabase().table("order_items").insert(rows).execute()
        return res.data or []
    except Exception:
        logger.exception("orders.repository.insert_order_items failed order_id=%s", rows[0].get("order_id"))
        return []


def insert_dropship_order(*, order_id: str, order_item_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("dropship_orders")
            .insert({
                "order_id": order_id,
                "order_item_id": order_item_id,
                "provider": PROVIDER,
                "status": "pending",
            })
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.insert_dropship_order failed order_id=%s", order_id)
        return None


def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_SELECT)
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.get_order failed order_id=%s", order_id)
        return None


def find_order_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Commande déjà créée pour une session Stripe (webhook rejoué)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_SELECT)
            .eq("stripe_session_id", session_id)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.find_order_by_session failed session_id=%s", session_id)
        return None


def list_orders(user_id: str, *, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    try:
        query = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_SELECT)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        if status:
            query = query.eq("status", status)
        res = query.range(offset, offset + limit - 1).execute()
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_orders failed user_id=%s", user_id)
        return []


def update_order_status(order_id: str, status: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({"status": status, "updated_at": _now()})
            .eq("id", order_id)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.update_order_status failed order_id=%s status=%s", order_id, status)
        return None


def insert_status_history(*, order_id: str, status: str, previous_status: Optional[str], source: str) -> Optional[Dict[str, Any]]:
    """Historique en ajout seul: une ligne par changement de statut."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("order_status_history")
            .insert({
                "order_id": order_id,
                "status": status,
                "previous_status": previous_status,
                "source": source,
            })
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.insert_status_history failed order_id=%s status=%s", order_id, status)
        return None


def get_dropship_order(order_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("dropship_orders")
            .select("*")
            .eq("order_id", order_id)
            .eq("provider", PROVIDER)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.get_dropship_order failed order_id=%s", order_id)
        return None


def update_dropship_orders(order_id: str, data: Dict[str, Any]) -> bool:
    """Met à jour toutes les lignes dropship du fournisseur pour une commande."""
    try:
        (
            supabase_client.get_service_supabase()
            .table("dropship_orders")
            .update({**data, "updated_at": _now()})
            .eq("order_id", order_id)
            .eq("provider", PROVIDER)
            .execute()
        )
        return True
    except Exception:
        logger.exception("orders.repository.update_dropship_orders failed order_id=%s", order_id)
        return False


def find_dropship_by_provider_id(provider_order_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("dropship_orders")
            .select("*")
            .eq("provider_order_id", provider_order_id)
            .eq("provider", PROVIDER)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("orders.repository.find_dropship_by_provider_id failed provider_order_id=%s", provider_order_id)
        return None
