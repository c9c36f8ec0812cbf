"""
Méthodes d'expédition: sélection de devis, options et recommandation.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ShippingMethod(str, Enum):
    BUDGET = "Budget"
    STANDARD = "Standard"
    EXPRESS = "Express"
    OVERNIGHT = "Overnight"


DELIVERY_DAYS = {
    ShippingMethod.BUDGET.value: 12,
    ShippingMethod.STANDARD.value: 6,
    ShippingMethod.EXPRESS.value: 3,
    ShippingMethod.OVERNIGHT.value: 1,
}
DEFAULT_DELIVERY_DAYS = 7


def estimated_days(method: Optional[str]) -> int:
    for name, days in DELIVERY_DAYS.items():
        if (method or "").lower() == name.lower():
            return days
    return DEFAULT_DELIVERY_DAYS


def select_quote(quotes: Sequence[Dict[str, Any]], method: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Choix déterministe d'un devis:
      1) méthode demandée (insensible à la casse)
      2) sinon "Standard"
      3) sinon le premier devis renvoyé
    """
    if not quotes:
        return None
    wanted = (method or "").strip().lower()
    if wanted:
        for q in quotes:
            if str(q.get("shipmentMethod") or "").lower() == wanted:
                return q
    for q in quotes:
        if q.get("shipmentMethod") == ShippingMethod.STANDARD.value:
            return q
    return quotes[0]


def _amount(value: Any) -> float:
    try:
        return float((value or {}).get("amount") or 0)
    except (TypeError, ValueError, AttributeError):
        return 0.0


def shipping_options(quotes: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Une option par devis: {method, cost, currency, estimated_days, service_name}."""
    options: List[Dict[str, Any]] = []
    for q in quotes:
        method = q.get("shipmentMethod") or ShippingMethod.STANDARD.value
        shipping = (q.get("costSummary") or {}).get("shipping") or {}
        options.append({
            "method": method,
            "cost": _amount(shipping),
            "currency": shipping.get("currency") or "USD",
            "estimated_days": estimated_days(method),
            "service_name": method,
        })
    return options


def recommended_method(options: Sequence[Dict[str, Any]]) -> str:
    """Standard si présent, sinon l'option la moins chère (Standard pour une liste vide)."""
    if not options:
        return ShippingMethod.STANDARD.value
    for o in options:
        if o.get("method") == ShippingMethod.STANDARD.value:
            return ShippingMethod.STANDARD.value
    return min(options, key=lambda o: o.get("cost") or 0).get("method")
