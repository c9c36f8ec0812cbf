"""
Classification du type de produit à partir du SKU catalogue.
- Énumération fermée ProductKind
- Règles de sous-chaînes sous forme de tables (testables isolément)
"""
from enum import Enum
from typing import Tuple


class ProductKind(str, Enum):
    FRAMED_PRINT = "framed-print"
    CANVAS = "canvas"
    FRAMED_CANVAS = "framed-canvas"
    METAL = "metal"
    ACRYLIC = "acrylic"
    PAPER = "paper"

    @property
    def is_canvas(self) -> bool:
        return self in (ProductKind.CANVAS, ProductKind.FRAMED_CANVAS)


# (mode, motif) avec mode "contains" ou "prefix", comparés en minuscules
_CANVAS_RULES: Tuple[Tuple[str, str], ...] = (("contains", "can-"), ("contains", "canvas"), ("prefix", "global-can-"))
_FRAMED_RULES: Tuple[Tuple[str, str], ...] = (("contains", "-fra-"), ("contains", "-frame"), ("contains", "-box-"))
_METAL_RULES: Tuple[Tuple[str, str], ...] = (("contains", "met-"), ("contains", "metal"), ("prefix", "global-met-"))
_ACRYLIC_RULES: Tuple[Tuple[str, str], ...] = (("contains", "acr-"), ("contains", "acrylic"), ("prefix", "global-acr-"))
_PAPER_RULES: Tuple[Tuple[str, str], ...] = (
    ("contains", "pap-"),
    ("contains", "poster"),
    ("contains", "paper"),
    ("prefix", "global-pap-"),
    ("contains", "fineart"),
)


def _matches(sku: str, rules: Tuple[Tuple[str, str], ...]) -> bool:
    for mode, pattern in rules:
        if mode == "prefix" and sku.startswith(pattern):
            return True
        if mode == "contains" and pattern in sku:
            return True
    return False


def classify_sku(sku: str) -> ProductKind:
    """
    Déduit le ProductKind d'un SKU (insensible à la casse).
    - canvas + motif encadré -> FRAMED_CANVAS
    - défaut: FRAMED_PRINT
    """
    s = (sku or "").strip().lower()
    if _matches(s, _CANVAS_RULES):
        return ProductKind.FRAMED_CANVAS if _matches(s, _FRAMED_RULES) else ProductKind.CANVAS
    if _matches(s, _METAL_RULES):
        return ProductKind.METAL
    if _matches(s, _ACRYLIC_RULES):
        return ProductKind.ACRYLIC
    if _matches(s, _PAPER_RULES):
        return ProductKind.PAPER
    return ProductKind.FRAMED_PRINT
