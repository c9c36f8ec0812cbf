# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, catalogue, devises)
- Expose les paramètres métier du checkout (quantités panier, seuils, caches)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Supabase: URLs et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Stripe: clé privée et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Pages de succès/annulation du checkout
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/cart")

# Catalogue print-on-demand (API REST: produits, devis, commandes)
CATALOG_API_URL = _clean_env(os.getenv("CATALOG_API_URL") or "https://api.sandbox.prodigi.com/v4.0").rstrip("/")
CATALOG_API_KEY = _clean_env(os.getenv("CATALOG_API_KEY") or os.getenv("PRODIGI_API_KEY") or "")
CATALOG_TIMEOUT_SECONDS = _float_env("CATALOG_TIMEOUT_SECONDS", 10.0)
# Jeton partagé des callbacks de statut (vide: callbacks acceptés sans contrôle)
CATALOG_CALLBACK_SECRET = _clean_env(os.getenv("CATALOG_CALLBACK_SECRET") or "")

# Index de recherche du catalogue (facettes OData)
CATALOG_SEARCH_URL = _clean_env(
    os.getenv("CATALOG_SEARCH_URL") or "https://pwintylive.search.windows.net/indexes/live-catalogue/docs"
)
CATALOG_SEARCH_KEY = _clean_env(os.getenv("CATALOG_SEARCH_KEY") or "")
FACET_CACHE_TTL_SECONDS = _int_env("FACET_CACHE_TTL_SECONDS", 5 * 60)
FACET_CACHE_MAX_ENTRIES = _int_env("FACET_CACHE_MAX_ENTRIES", 500)

# Taux de change (base USD, best-effort)
CURRENCY_API_URL = _clean_env(os.getenv("CURRENCY_API_URL") or "https://api.exchangerate-api.com/v4/latest/USD")
CURRENCY_TIMEOUT_SECONDS = _float_env("CURRENCY_TIMEOUT_SECONDS", 5.0)
CURRENCY_CACHE_TTL_SECONDS = _int_env("CURRENCY_CACHE_TTL_SECONDS", 12 * 60 * 60)

# Règles métier du checkout
DEFAULT_COUNTRY = _clean_env(os.getenv("DEFAULT_COUNTRY") or "US").upper()
DEFAULT_SHIPPING_METHOD = _clean_env(os.getenv("DEFAULT_SHIPPING_METHOD") or "Standard")
CART_MIN_QUANTITY = 1
CART_MAX_QUANTITY = _int_env("CART_MAX_QUANTITY", 10)
PRICE_MISMATCH_THRESHOLD = _float_env("PRICE_MISMATCH_THRESHOLD", 0.05)
