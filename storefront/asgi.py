"""
ASGI entrypoint: expose `app` pour les process managers (ex: uvicorn storefront.asgi:app).
"""
from storefront.app_setup.factory import create_app

app = create_app()
