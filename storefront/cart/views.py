"""Endpoints du panier (authentifié).
- Les mutations tentent un prix temps réel mais n'échouent jamais à cause du devis (pricing_stale)
- Les erreurs métier (CheckoutError) sont rendues par le handler global
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.config import DEFAULT_COUNTRY
from storefront.utils.security import require_user
from storefront.utils.rate_limit import optional_rate_limit
from storefront.cart import service as cart_service

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class AddItemBody(BaseModel):
    product_id: str = Field(alias="productId")
    quantity: int = 1

    model_config = {"populate_by_name": True}


class UpdateItemBody(BaseModel):
    quantity: int


class ValidatePricesBody(BaseModel):
    country: str = DEFAULT_COUNTRY


@router.get("")
def get_cart(
    country: str = DEFAULT_COUNTRY,
    currency: Optional[str] = None,
    shipping_method: Optional[str] = None,
    user: Dict[str, Any] = Depends(require_user),
):
    return cart_service.get_cart(user["id"], country=country.upper(), shipping_method=shipping_method, currency=currency)


@router.post("/items", status_code=201, dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def add_item(body: AddItemBody, user: Dict[str, Any] = Depends(require_user)):
    return cart_service.add_item(user_id=user["id"], product_id=body.product_id, quantity=body.quantity)


@router.patch("/items/{item_id}", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def update_item(item_id: str, body: UpdateItemBody, user: Dict[str, Any] = Depends(require_user)):
    return cart_service.update_quantity(user_id=user["id"], item_id=item_id, quantity=body.quantity)


@router.delete("/items/{item_id}")
def remove_item(item_id: str, user: Dict[str, Any] = Depends(require_user)):
    cart_service.remove_item(user_id=user["id"], item_id=item_id)
    return {"status": "ok"}


@router.delete("")
def clear_cart(user: Dict[str, Any] = Depends(require_user)):
    cart_service.clear_cart(user["id"])
    return {"status": "ok"}


@router.post("/validate-prices", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def validate_prices(body: ValidatePricesBody, user: Dict[str, Any] = Depends(require_user)):
    return cart_service.validate_prices(user["id"], body.country.upper())
