"""
Normalisation des facettes brutes de l'index catalogue.
- Styles de cadre ramenés à un ensemble canonique
- Ratios d'aspect regroupés en Portrait / Square / Landscape
"""
import re
from typing import Any, Dict, Iterable, List, Optional

FRAMED_PRODUCT_TYPES = frozenset({"framed-print", "framed-canvas"})

CANONICAL_FRAME_STYLES = ("Classic", "Box Frame", "Float Frame", "Ornate Frame", "Aluminium", "Budget", "Spacer")

ASPECT_RATIO_LABELS = ("Landscape", "Portrait", "Square")
PORTRAIT_MAX = 95.0
LANDSCAPE_MIN = 105.0

_STRETCHER_WITH_COMMA = re.compile(r"\s*,\s*\d+mm\s+(Standard|Premium)\s+Stretcher\s+Bar", re.IGNORECASE)
_STRETCHER = re.compile(r"\s*\d+mm\s+(Standard|Premium)\s+Stretcher\s+Bar", re.IGNORECASE)
_TRAILING_FRAME = re.compile(r"\s*Frame\s*$", re.IGNORECASE)

# (sous-chaîne, style canonique), évalués dans l'ordre
_STYLE_TABLE = (
    ("classic", "Classic"),
    ("box", "Box Frame"),
    ("float", "Float Frame"),
    ("ornate", "Ornate Frame"),
    ("aluminium", "Aluminium"),
    ("aluminum", "Aluminium"),
    ("budget", "Budget"),
    ("spacer", "Spacer"),
)


def canonical_frame_style(raw: str) -> Optional[str]:
    """
    "Classic Frame, 19mm Standard Stretcher Bar" -> "Classic".
    - None pour "Rolled / No Frame", une barre de châssis seule, ou une valeur inconnue
    """
    original = (raw or "").strip()
    lower_raw = original.lower()
    if "rolled" in lower_raw or "no frame" in lower_raw:
        return None
    if "stretcher bar" in lower_raw and "frame" not in lower_raw:
        return None
    text = _STRETCHER_WITH_COMMA.sub("", original)
    text = _STRETCHER.sub("", text)
    text = _TRAILING_FRAME.sub("", text).strip()
    lower = text.lower()
    for needle, style in _STYLE_TABLE:
        if needle in lower:
            return style
    return None


def process_frame_styles(raw_styles: Iterable[str], product_type: Optional[str]) -> List[str]:
    """
    Styles canoniques triés et dédoublonnés.
    - Toujours [] pour un type autre que framed-print / framed-canvas
    """
    if (product_type or "").lower() not in FRAMED_PRODUCT_TYPES:
        return []
    styles = {canonical_frame_style(s) for s in raw_styles or []}
    styles.discard(None)
    return sorted(styles)


def bucket_aspect_ratio(ratio: float) -> str:
    """
    Ratio catalogue (côté long / côté court x 100) vers un libellé.
    - < 95: Portrait; 95..105 inclus: Square; > 105: Landscape
    """
    if ratio < PORTRAIT_MAX:
        return "Portrait"
    if ratio <= LANDSCAPE_MIN:
        return "Square"
    return "Landscape"


def aspect_ratio_bounds(label: str) -> Dict[str, float]:
    """
    Bornes de filtre associées à un libellé (Landscape / Portrait / Square).
    - Square inclut 95 et 105; Portrait et Landscape les excluent
    """
    lower = (label or "").strip().lower()
    if lower == "landscape":
        return {"aspect_ratio_above": LANDSCAPE_MIN, "aspect_ratio_max": 100000}
    if lower == "portrait":
        return {"aspect_ratio_min": 0, "aspect_ratio_below": PORTRAIT_MAX}
    return {"aspect_ratio_min": PORTRAIT_MAX, "aspect_ratio_max": LANDSCAPE_MIN}


def _range_midpoint(lo: Optional[float], hi: Optional[float]) -> Optional[float]:
    """Point représentatif d'une plage; une plage ouverte vers le haut est doublée."""
    if lo is None and hi is None:
        return None
    lo = float(lo or 0)
    hi = float(hi) if hi is not None else lo * 2
    return (lo + hi) / 2


def aspect_ratios_from_ranges(ranges: Optional[Iterable[Dict[str, Any]]]) -> List[str]:
    """
    Libellés présents dans les plages de facette {from, to, count}.
    - Plage vide (count 0) ignorée
    - Aucune donnée: les trois libellés
    """
    labels: List[str] = []
    for bucket in ranges or []:
        if not (bucket or {}).get("count"):
            continue
        point = _range_midpoint(bucket.get("from"), bucket.get("to"))
        if point is None:
            continue
        label = bucket_aspect_ratio(point)
        if label not in labels:
            labels.append(label)
    return labels or list(ASPECT_RATIO_LABELS)


def facet_values(raw: Optional[Iterable[Dict[str, Any]]]) -> List[str]:
    """Valeurs d'une facette {value, count} dont le count est positif."""
    out: List[str] = []
    for entry in raw or []:
        value = (entry or {}).get("value")
        if value is None or not str(value).strip():
            continue
        if entry.get("count") is not None and entry.get("count") <= 0:
            continue
        if str(value) not in out:
            out.append(str(value))
    return out
