"""Endpoints catalogue: options disponibles par type de produit, validation de configuration, attributs résolus."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.config import DEFAULT_COUNTRY
from storefront.utils.rate_limit import optional_rate_limit
from storefront.attributes.models import FrameConfiguration
from storefront.facets.service import get_facet_service
from storefront.pricing.service import get_pricing_service

router = APIRouter(prefix="/api/v1/catalog", tags=["Catalog API"])


class ValidateBody(BaseModel):
    config: FrameConfiguration = Field(default_factory=FrameConfiguration)
    country: str = DEFAULT_COUNTRY


class AttributesBody(BaseModel):
    sku: str
    config: FrameConfiguration = Field(default_factory=FrameConfiguration)


@router.get("/options/{product_type}", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
def available_options(
    product_type: str,
    country: str = DEFAULT_COUNTRY,
    aspect_ratio: Optional[str] = None,
    frame_color: Optional[str] = None,
):
    extra: Dict[str, Any] = {}
    if aspect_ratio:
        extra["aspect_ratio_label"] = aspect_ratio
    if frame_color:
        extra["frame_colors"] = [frame_color]
    return get_facet_service().available_options(product_type, country, extra or None).model_dump()


@router.post("/options/{product_type}/validate")
def validate_configuration(product_type: str, body: ValidateBody):
    valid, errors = get_facet_service().validate_configuration(product_type, body.config, body.country)
    return {"valid": valid, "errors": errors}


@router.post("/attributes", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
def resolve_attributes(body: AttributesBody):
    return get_pricing_service().resolve_line_attributes(body.sku, body.config)
