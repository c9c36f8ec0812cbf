from typing import Any, Dict, Optional
import logging

from fastapi import Request, HTTPException, Depends

import storefront.infra.supabase_client as supabase_client

COOKIE_NAME = "sb_access"

logger = logging.getLogger(__name__)


def token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)
    return token or None


def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur renvoyé par supabase.auth.get_user(access_token): {id, email, metadata, role}."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None)
    if user is None:
        return {}
    metadata = getattr(user, "user_metadata", None) or {}
    role = "admin" if str(metadata.get("role", "")).lower() == "admin" else "user"
    return {"id": getattr(user, "id", None), "email": getattr(user, "email", None), "metadata": metadata, "role": role}


def get_current_user(request: Request) -> Dict[str, Any]:
    token = token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user = get_user_from_token(token)
    except Exception as e:
        logger.info("security.get_current_user rejected token: %s", e)
        raise HTTPException(status_code=401, detail="Session expired")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expired")
    return user


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return user
