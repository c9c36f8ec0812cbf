"""
Validation des adresses de livraison avant paiement.
- Codes postaux requis pour les pays qui en ont un format établi
- État/province requis pour US, CA, AU
"""
from typing import Any, Dict, List, Tuple

from storefront.errors import address_error

ZIP_REQUIRED_COUNTRIES = frozenset({"US", "CA", "GB", "AU", "DE", "FR", "IT", "ES", "NL", "BE", "AT", "PT"})
STATE_REQUIRED_COUNTRIES = frozenset({"US", "CA", "AU"})

ADDRESS_FIELDS = ("first_name", "last_name", "address1", "address2", "city", "state", "zip", "country", "phone", "email")


def normalize_address(address: Dict[str, Any]) -> Dict[str, Any]:
    """Trim des champs connus, pays en majuscules; les champs vides deviennent ''."""
    out = {k: str((address or {}).get(k) or "").strip() for k in ADDRESS_FIELDS}
    out["country"] = out["country"].upper()
    return out


def validate_address(address: Dict[str, Any]) -> Tuple[bool, List[str]]:
    a = normalize_address(address)
    errors: List[str] = []
    if len(a["address1"]) < 3:
        errors.append("Street address is required")
    if len(a["city"]) < 2:
        errors.append("City is required")
    if len(a["country"]) != 2 or not a["country"].isalpha():
        errors.append("Valid country code is required")
    if a["country"] in ZIP_REQUIRED_COUNTRIES and len(a["zip"]) < 3:
        errors.append("Valid postal code is required")
    if a["country"] in STATE_REQUIRED_COUNTRIES and len(a["state"]) < 2:
        errors.append("State/Province is required")
    return (not errors), errors


def require_valid_address(address: Dict[str, Any]) -> Dict[str, Any]:
    """
    Retourne l'adresse normalisée, ou lève ADDRESS/INVALID_ADDRESS (422) avec la liste des erreurs.
    """
    valid, errors = validate_address(address)
    if not valid:
        raise address_error("Invalid shipping address", code="INVALID_ADDRESS", details={"errors": errors})
    return normalize_address(address)
