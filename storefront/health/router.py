from fastapi import APIRouter, Request

from storefront.currency.service import get_currency_service
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root():
    return {"ok": True}


@router.get("/currency")
def health_currency():
    return get_currency_service().cache_status()


@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
