"""
Machine d'états des commandes.
- Table fixe étape catalogue -> statut interne (étape inconnue: processing)
- Transitions uniquement vers l'avant; états terminaux figés
"""
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"
    DISPUTED = "disputed"
    REFUNDED = "refunded"


CATALOG_STAGE_MAP = {
    "InProgress": OrderStatus.PROCESSING,
    "Complete": OrderStatus.SHIPPED,
    "Cancelled": OrderStatus.CANCELLED,
    "OnHold": OrderStatus.PENDING,
    "Error": OrderStatus.FAILED,
}
DEFAULT_CATALOG_STATUS = OrderStatus.PROCESSING

# Progression nominale
_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.PAID: 1,
    OrderStatus.PROCESSING: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.DELIVERED: 4,
}
TERMINAL_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.FAILED, OrderStatus.REFUNDED})
_ABORTABLE = frozenset({OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.PROCESSING})
_DISPUTABLE = frozenset({OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED})


def map_catalog_stage(stage: Optional[str]) -> OrderStatus:
    return CATALOG_STAGE_MAP.get(stage or "", DEFAULT_CATALOG_STATUS)


def parse_status(value: Optional[str]) -> Optional[OrderStatus]:
    try:
        return OrderStatus((value or "").strip().lower())
    except ValueError:
        return None


def can_transition(current: Optional[OrderStatus], new: OrderStatus) -> bool:
    """
    Vrai si current -> new est une progression autorisée.
    - None (commande sans statut): tout est accepté
    - cancelled / failed seulement depuis pending, paid, processing
    - disputed depuis un état payé; disputed -> refunded uniquement
    """
    if current is None:
        return True
    if current == new or current in TERMINAL_STATUSES:
        return False
    if current == OrderStatus.DISPUTED:
        return new == OrderStatus.REFUNDED
    if new in (OrderStatus.CANCELLED, OrderStatus.FAILED):
        return current in _ABORTABLE
    if new in (OrderStatus.DISPUTED, OrderStatus.REFUNDED):
        return current in _DISPUTABLE
    return _RANK[new] > _RANK[current]
