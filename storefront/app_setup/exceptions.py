"""
Gestionnaires d'exceptions.
- HTTPException: JSON {"detail": ...} standard
- CheckoutError: JSON {"error": {kind, code, message, details}} avec le statut porté par l'erreur
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.errors import CheckoutError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_json(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(CheckoutError)
    async def checkout_error_json(request: Request, exc: CheckoutError):
        log = logger.error if exc.http_status >= 500 else logger.info
        log("checkout error path=%s kind=%s code=%s status=%s", request.url.path, exc.kind.value, exc.code, exc.http_status)
        return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})
