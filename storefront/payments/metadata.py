"""
Sérialisation/désérialisation des métadonnées Stripe du checkout.
- Stripe n'accepte que des valeurs chaîne: nombres et adresse sont encodés en texte/JSON
"""
import json
from typing import Any, Dict, Optional


def make_metadata(
    *,
    user_id: str,
    totals: Dict[str, Any],
    shipping_method: str,
    shipping_address: Dict[str, Any],
) -> Dict[str, str]:
    return {
        "user_id": str(user_id or ""),
        "currency": str(totals.get("currency") or "USD"),
        "original_currency": str(totals.get("original_currency") or "USD"),
        "original_total": str(totals.get("original_total") or 0),
        "exchange_rate": str(totals.get("exchange_rate") or 1),
        "subtotal": str(totals.get("subtotal") or 0),
        "shipping": str(totals.get("shipping") or 0),
        "tax": str(totals.get("tax") or 0),
        "total": str(totals.get("total") or 0),
        "shipping_method": shipping_method,
        "shipping_address": json.dumps(shipping_address, separators=(",", ":")),
    }


def extract_metadata(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrait les métadonnées depuis un event Stripe (event.data.object.metadata).
    """
    data_obj = ((event or {}).get("data") or {}).get("object") or {}
    return parse_metadata(data_obj.get("metadata"))


def parse_metadata(meta: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Décode les métadonnées d'une session.
    - Tolérant aux erreurs: adresse illisible -> {}, nombres illisibles -> None
    """
    meta = dict(meta or {})
    try:
        address = json.loads(meta.get("shipping_address") or "{}")
    except (TypeError, ValueError):
        address = {}

    def _num(key: str) -> Optional[float]:
        try:
            return float(meta[key])
        except (KeyError, TypeError, ValueError):
            return None

    return {
        "user_id": meta.get("user_id"),
        "currency": meta.get("currency") or "USD",
        "original_currency": meta.get("original_currency") or "USD",
        "original_total": _num("original_total"),
        "exchange_rate": _num("exchange_rate"),
        "subtotal": _num("subtotal") or 0.0,
        "shipping": _num("shipping") or 0.0,
        "tax": _num("tax") or 0.0,
        "total": _num("total") or 0.0,
        "shipping_method": meta.get("shipping_method") or "Standard",
        "shipping_address": address if isinstance(address, dict) else {},
    }
