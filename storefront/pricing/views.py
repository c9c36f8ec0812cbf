"""Endpoints de tarification: devis de lignes arbitraires, options d'expédition, devises."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from storefront.config import DEFAULT_COUNTRY
from storefront.utils.rate_limit import optional_rate_limit
from storefront.attributes.models import FrameConfiguration
from storefront.cart.models import CartLineItem
from storefront.currency.service import get_currency_service
from storefront.pricing.service import get_pricing_service
from storefront.pricing.shipping import recommended_method

router = APIRouter(prefix="/api/v1/pricing", tags=["Pricing API"])


class PriceLine(BaseModel):
    sku: str
    quantity: int = 1
    price: float = 0.0
    frame_config: FrameConfiguration = Field(default_factory=FrameConfiguration, alias="frameConfig")

    model_config = {"populate_by_name": True}

    def to_line(self, index: int) -> CartLineItem:
        return CartLineItem(
            id=f"line-{index}",
            sku=self.sku,
            quantity=self.quantity,
            price=self.price,
            original_price=self.price,
            frame_config=self.frame_config,
        )


class QuoteBody(BaseModel):
    items: List[PriceLine]
    country: str = DEFAULT_COUNTRY
    shipping_method: Optional[str] = Field(default=None, alias="shippingMethod")
    currency: Optional[str] = None

    model_config = {"populate_by_name": True}


class ShippingOptionsBody(BaseModel):
    items: List[PriceLine]
    country: str = DEFAULT_COUNTRY


@router.post("/quote", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def quote(body: QuoteBody):
    lines = [line.to_line(i) for i, line in enumerate(body.items)]
    result = get_pricing_service().price(lines, body.country.upper(), body.shipping_method, body.currency)
    return result.model_dump()


@router.post("/shipping-options", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def shipping_options(body: ShippingOptionsBody):
    lines = [line.to_line(i) for i, line in enumerate(body.items)]
    options = get_pricing_service().shipping_options(lines, body.country)
    return {"options": options, "recommended": recommended_method(options)}


@router.get("/currency/rates")
def currency_rates():
    service = get_currency_service()
    return {
        "base": "USD",
        "rates": service.get_rates(),
        "currencies": service.supported_currencies(),
        "cache": service.cache_status(),
    }


@router.get("/currency/convert")
def currency_convert(amount: float, to: str, from_: str = Query("USD", alias="from")):
    if amount < 0:
        raise HTTPException(status_code=400, detail="amount must be positive")
    service = get_currency_service()
    source, target = from_.upper(), to.upper()
    return {
        "amount": amount,
        "from": source,
        "to": target,
        "rate": service.rate(source, target),
        "converted": service.convert(amount, source, target),
    }
