"""
Ligne de panier (quantité toujours bornée à [CART_MIN_QUANTITY, CART_MAX_QUANTITY]).
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.config import CART_MIN_QUANTITY, CART_MAX_QUANTITY
from storefront.attributes.models import FrameConfiguration


def clamp_quantity(value: Any) -> int:
    """Borne une quantité dans [1, 10] (valeur invalide -> minimum)."""
    try:
        qty = int(value)
    except (TypeError, ValueError):
        qty = CART_MIN_QUANTITY
    return max(CART_MIN_QUANTITY, min(CART_MAX_QUANTITY, qty))


class CartLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    product_id: str = Field(default="", alias="productId")
    sku: str
    quantity: int = CART_MIN_QUANTITY
    price: float = 0.0
    original_price: float = Field(default=0.0, alias="originalPrice")
    currency: str = "USD"
    name: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    frame_config: FrameConfiguration = Field(default_factory=FrameConfiguration, alias="frameConfig")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> int:
        return clamp_quantity(v)

    @classmethod
    def from_rows(cls, cart_row: Dict[str, Any], product: Optional[Dict[str, Any]]) -> "CartLineItem":
        """
        Construit une ligne depuis 'cart_items' + le produit joint ('products').
        - price: prix stocké sur la ligne, sinon prix catalogue du produit
        """
        product = product or {}
        catalog_price = float(product.get("price") or 0)
        return cls(
            id=str(cart_row.get("id") or ""),
            product_id=str(cart_row.get("product_id") or product.get("id") or ""),
            sku=str(product.get("sku") or ""),
            quantity=cart_row.get("quantity") or CART_MIN_QUANTITY,
            price=float(cart_row.get("price") or catalog_price),
            original_price=catalog_price,
            name=product.get("name"),
            image_url=product.get("image_url"),
            frame_config=FrameConfiguration.from_row(product),
            created_at=cart_row.get("created_at"),
            updated_at=cart_row.get("updated_at"),
        )
