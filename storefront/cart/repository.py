"""
Accès aux données pour la feature 'cart' (tables 'cart_items' et 'products').
"""
from typing import Any, Dict, List, Optional
import logging
from datetime import datetime, timezone

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

CART_SELECT = "*, products(*)"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_product(product_id: str) -> Optional[Dict[str, Any]]:
    """
    Produit par id (table 'products').
    - Retourne None si introuvable ou en cas d'erreur.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("products")
            .select("*")
            .eq("id", product_id)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("cart.repository.get_product failed product_id=%s", product_id)
        return None


def fetch_cart_rows(user_id: str) -> List[Dict[str, Any]]:
    """
    Lignes du panier avec le produit joint, plus anciennes d'abord.
    - Retourne [] en cas d'erreur.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select(CART_SELECT)
            .eq("user_id", user_id)
            .order("created_at")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("cart.repository.fetch_cart_rows failed user_id=%s", user_id)
        return []


def find_cart_row(user_id: str, product_id: str) -> Optional[Dict[str, Any]]:
    """Ligne existante pour (user_id, product_id), None sinon."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select(CART_SELECT)
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("cart.repository.find_cart_row failed user_id=%s product_id=%s", user_id, product_id)
        return None


def get_cart_row(user_id: str, item_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select(CART_SELECT)
            .eq("id", item_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("cart.repository.get_cart_row failed user_id=%s item_id=%s", user_id, item_id)
        return None


def insert_cart_row(*, user_id: str, product_id: str, quantity: int, price: float) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .insert({
                "user_id": user_id,
                "product_id": product_id,
                "quantity": quantity,
                "price": price,
            })
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("cart.repository.insert_cart_row failed user_id=%s product_id=%s", user_id, product_id)
        return None


def update_cart_row(*, user_id: str, item_id: str, quantity: int, price: float) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .update({"quantity": quantity, "price": price, "updated_at": _now()})
            .eq("id", item_id)
            .eq("user_id", user_id)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("cart.repository.update_cart_row failed user_id=%s item_id=%s", user_id, item_id)
        return None


def delete_cart_row(*, user_id: str, item_id: str) -> bool:
    """Supprime une ligne; True si une ligne a été supprimée."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("id", item_id)
            .eq("user_id", user_id)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("cart.repository.delete_cart_row failed user_id=%s item_id=%s", user_id, item_id)
        return False


def clear_cart_rows(user_id: str) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("user_id", user_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.clear_cart_rows failed user_id=%s", user_id)
        return False
