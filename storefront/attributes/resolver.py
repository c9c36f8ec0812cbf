"""
Résolution d'une configuration de cadre vers le dictionnaire d'attributs du catalogue.

- Mode schéma: correspondance insensible à la casse avec les valeurs valides, casse catalogue en sortie
- Mode heuristique: type de produit déduit du SKU, attributs non applicables supprimés
- Ne lève jamais: un champ non résolu est ignoré (loggé), il ne doit pas bloquer le devis
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .classifier import classify_sku
from .models import FrameConfiguration
from .rules import (
    AttributeRule,
    COUPLED_ATTRIBUTES,
    HEURISTIC_RULES,
    LOWERCASE_ATTRIBUTES,
    SCHEMA_RULES,
)

logger = logging.getLogger(__name__)


def _valid_values(schema: Mapping[str, Any], attribute: str) -> Optional[List[str]]:
    values = schema.get(attribute)
    if not values:
        return None
    if isinstance(values, str):
        values = [values]
    return [str(v) for v in values if v is not None and str(v).strip()]


def _match_valid(value: str, valid: Iterable[str], fuzzy_token: Optional[str] = None) -> Optional[str]:
    """
    Cherche value dans valid (insensible à la casse) et renvoie la casse du catalogue.
    - fuzzy_token (ex: "mm"): si présent dans value, accepte une inclusion dans un sens ou l'autre
    """
    lower = value.strip().lower()
    valid = list(valid)
    for v in valid:
        if v.lower() == lower:
            return v
    if fuzzy_token and fuzzy_token in lower:
        for v in valid:
            vl = v.lower()
            if lower in vl or vl in lower:
                return v
    return None


def _choose_default(rule: AttributeRule, valid: List[str]) -> Optional[str]:
    for candidate in rule.defaults:
        match = _match_valid(candidate, valid)
        if match:
            return match
    if rule.first_valid and valid:
        return valid[0]
    return None


def _resolve_with_schema(config: FrameConfiguration, schema: Mapping[str, Any]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for rule in SCHEMA_RULES:
        requested = config.requested(rule.source)
        valid = _valid_values(schema, rule.attribute)
        if valid is None:
            if requested:
                logger.debug("attributes.schema dropped %s=%r (not supported by product)", rule.attribute, requested)
            continue
        if rule.requires and rule.requires not in out:
            continue

        if requested:
            if rule.reject and rule.reject(requested):
                logger.info("attributes.schema skipped %s=%r (color name, not a frame style)", rule.attribute, requested)
            else:
                target = rule.aliases.get(requested.lower(), requested)
                match = _match_valid(target, valid, rule.fuzzy_token)
                if match:
                    out[rule.attribute] = match
                    continue
                logger.info("attributes.schema dropped %s=%r (valid=%s)", rule.attribute, requested, valid)

        default = _choose_default(rule, valid)
        if default:
            out[rule.attribute] = default

    # Un parent couplé sans son enfant est un demi-état invalide
    for parent, child in COUPLED_ATTRIBUTES.items():
        if parent in out and child not in out and child in schema:
            logger.warning("attributes.schema dropped %s=%r (no valid %s)", parent, out[parent], child)
            out.pop(parent)
    return out


def _resolve_heuristic(config: FrameConfiguration, sku: str) -> Dict[str, str]:
    kind = classify_sku(sku)
    out: Dict[str, str] = {}
    for rule in HEURISTIC_RULES:
        requested = config.requested(rule.source)
        if kind not in rule.kinds:
            if requested:
                logger.debug("attributes.heuristic suppressed %s=%r for %s", rule.attribute, requested, kind.value)
            continue
        if rule.requires and rule.requires not in out:
            continue
        if rule.forced:
            if requested and requested.lower() != (rule.default or "").lower():
                logger.info("attributes.heuristic forced %s=%r (requested %r)", rule.attribute, rule.default, requested)
            out[rule.attribute] = rule.default
            continue
        if requested and rule.reject and rule.reject(requested):
            logger.info("attributes.heuristic skipped %s=%r (color name, not a frame style)", rule.attribute, requested)
            requested = None
        if requested:
            out[rule.attribute] = rule.aliases.get(requested.lower(), requested)
        elif rule.default:
            out[rule.attribute] = rule.default
    return out


def normalize_attributes(attrs: Mapping[str, Any]) -> Dict[str, str]:
    """
    Normalisation finale commune aux deux modes:
    - trim, suppression des valeurs vides/None
    - wrap toujours en minuscules
    """
    out: Dict[str, str] = {}
    for key, value in attrs.items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        out[key] = text.lower() if key in LOWERCASE_ATTRIBUTES else text
    return out


def resolve_attributes(
    config: Optional[FrameConfiguration],
    sku: str = "",
    valid_attributes: Optional[Mapping[str, Any]] = None,
) -> Dict[str, str]:
    """
    Résout les attributs catalogue d'une ligne.
    - valid_attributes fourni (non vide): mode schéma; sinon heuristique sur le SKU
    - Retourne {} plutôt que de lever en cas de problème inattendu
    """
    config = config or FrameConfiguration()
    try:
        if valid_attributes:
            attrs = _resolve_with_schema(config, valid_attributes)
        else:
            attrs = _resolve_heuristic(config, sku)
    except Exception:
        logger.exception("attributes.resolve_attributes failed sku=%s", sku)
        return {}
    return normalize_attributes(attrs)
