"""
Tables de règles déclaratives pour la résolution d'attributs catalogue.

- SCHEMA_RULES: mode avec schéma (valeurs valides connues par attribut)
- HEURISTIC_RULES: mode sans schéma (type déduit du SKU)
L'ordre compte: un attribut couplé (requires) est évalué après son attribut parent.
"""
from typing import Callable, Dict, FrozenSet, NamedTuple, Optional, Tuple

from .classifier import ProductKind

COLOR_NAMES: Tuple[str, ...] = ("black", "white", "brown", "natural", "gold", "silver", "dark grey", "light grey")

FINISH_PREFERENCE: Tuple[str, ...] = ("high gloss", "satin", "mid-gloss", "sheer glossy", "sheer matte")
WRAP_PREFERENCE: Tuple[str, ...] = ("ImageWrap", "Black", "White", "MirrorWrap")

GLAZE_ALIASES: Dict[str, str] = {"acrylic": "Acrylic / Perspex"}


def looks_like_color(value: str) -> bool:
    """Un « style de cadre » qui nomme une couleur est une couleur mal classée."""
    lower = (value or "").strip().lower()
    return any(lower == c or c in lower for c in COLOR_NAMES)


class AttributeRule(NamedTuple):
    attribute: str
    source: str
    defaults: Tuple[str, ...] = ()
    first_valid: bool = False
    requires: Optional[str] = None
    aliases: Dict[str, str] = {}
    fuzzy_token: Optional[str] = None
    reject: Optional[Callable[[str], bool]] = None


SCHEMA_RULES: Tuple[AttributeRule, ...] = (
    AttributeRule("color", "frame_color", first_valid=True),
    AttributeRule("wrap", "wrap", defaults=WRAP_PREFERENCE, first_valid=True),
    AttributeRule("glaze", "glaze", aliases=GLAZE_ALIASES),
    AttributeRule("mount", "mount", first_valid=True, fuzzy_token="mm"),
    AttributeRule("mountColor", "mount_color", first_valid=True, requires="mount"),
    AttributeRule("paperType", "paper_type", first_valid=True),
    AttributeRule("finish", "finish", defaults=FINISH_PREFERENCE, first_valid=True),
    AttributeRule("edge", "edge", first_valid=True),
    AttributeRule("frame", "frame_style", reject=looks_like_color),
    AttributeRule("substrateWeight", "substrate_weight"),
    AttributeRule("style", "style"),
)

# Attributs couplés: si le parent est émis, l'enfant doit l'être aussi
COUPLED_ATTRIBUTES: Dict[str, str] = {"mount": "mountColor"}


_ALL_KINDS: FrozenSet[ProductKind] = frozenset(ProductKind)
_CANVAS_KINDS: FrozenSet[ProductKind] = frozenset(k for k in ProductKind if k.is_canvas)
_NON_CANVAS_KINDS: FrozenSet[ProductKind] = _ALL_KINDS - _CANVAS_KINDS


class HeuristicRule(NamedTuple):
    attribute: str
    source: str
    kinds: FrozenSet[ProductKind] = _ALL_KINDS
    default: Optional[str] = None
    requires: Optional[str] = None
    aliases: Dict[str, str] = {}
    reject: Optional[Callable[[str], bool]] = None
    # Sans schéma pour valider la valeur demandée, seul le défaut est envoyé
    forced: bool = False


HEURISTIC_RULES: Tuple[HeuristicRule, ...] = (
    HeuristicRule("color", "frame_color", kinds=_ALL_KINDS - {ProductKind.CANVAS}),
    HeuristicRule("wrap", "wrap", kinds=_CANVAS_KINDS, default="ImageWrap", forced=True),
    HeuristicRule("glaze", "glaze", kinds=_NON_CANVAS_KINDS, aliases=GLAZE_ALIASES),
    HeuristicRule("mount", "mount", kinds=_NON_CANVAS_KINDS),
    HeuristicRule("mountColor", "mount_color", kinds=_NON_CANVAS_KINDS, requires="mount"),
    HeuristicRule("edge", "edge", kinds=_NON_CANVAS_KINDS),
    HeuristicRule("finish", "finish", kinds=frozenset({ProductKind.METAL, ProductKind.ACRYLIC}), default="high gloss"),
    HeuristicRule("paperType", "paper_type", kinds=frozenset({ProductKind.PAPER})),
    HeuristicRule("frame", "frame_style", reject=looks_like_color),
    HeuristicRule("substrateWeight", "substrate_weight"),
    HeuristicRule("style", "style"),
)

# Attributs toujours émis en minuscules (devis et listing incohérents sur la casse)
LOWERCASE_ATTRIBUTES: FrozenSet[str] = frozenset({"wrap"})
