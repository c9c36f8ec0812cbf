from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

QUOTE_PRINT_AREA = "default"


class QuoteItem(BaseModel):
    """Ligne de devis dérivée (non persistée); clé d'équivalence = (base_sku, attributs canoniques)."""
    base_sku: str
    copies: int
    attributes: Dict[str, str] = Field(default_factory=dict)
    print_area: str = QUOTE_PRINT_AREA

    def to_request(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "sku": self.base_sku,
            "copies": self.copies,
            "assets": [{"printArea": self.print_area}],
        }
        if self.attributes:
            item["attributes"] = dict(self.attributes)
        return item


class Quote(BaseModel):
    shipping_method: str
    items_cost: float
    shipping_cost: float
    currency: str = "USD"

    @classmethod
    def from_catalog(cls, raw: Dict[str, Any]) -> "Quote":
        summary = raw.get("costSummary") or {}
        items = summary.get("items") or {}
        shipping = summary.get("shipping") or {}
        return cls(
            shipping_method=raw.get("shipmentMethod") or "Standard",
            items_cost=float(items.get("amount") or 0),
            shipping_cost=float(shipping.get("amount") or 0),
            currency=(items.get("currency") or "USD").upper(),
        )


class PricingResult(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    total: float
    currency: str
    original_currency: str
    original_total: float
    exchange_rate: Optional[float] = None
    shipping_method: str = "Standard"
    estimated_days: int = 7


class PriceMismatch(BaseModel):
    item_id: str
    sku: str
    catalog_price: float
    quoted_price: float
    difference: float
    percent_difference: float
