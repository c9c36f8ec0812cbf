"""
Factory d'application pour les entrypoints (storefront.asgi).
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base et no-cache
      - gestionnaires d'exceptions (HTTPException, CheckoutError)
      - tous les routers (API v1, health)
    """
    app = FastAPI(title="Storefront Checkout API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
