"""
Tables de secours par type de produit (utilisées quand l'index ne renvoie rien pour un champ).
"""
from typing import Any, Dict, List

# Type interne -> types catalogue (index de recherche)
PRODUCT_TYPE_MAP: Dict[str, List[str]] = {
    "framed-print": ["Framed prints"],
    "canvas": ["Stretched canvas"],
    "framed-canvas": ["Framed canvas"],
    "acrylic": ["Acrylic panels"],
    "metal": ["Aluminium prints", "Dibond prints"],
    "poster": ["Rolled canvas"],
}

FRAME_COLORS = ["Black", "White", "Brown", "Natural", "Gold", "Silver", "Dark Grey", "Light Grey"]
FRAME_STYLES = ["Aluminium", "Box Frame", "Budget", "Classic", "Float Frame", "Ornate Frame", "Spacer"]
FINISHES = ["Gloss", "Lustre", "Matte"]
EDGES = ["19mm", "38mm", "Rolled"]
WRAPS = ["Black", "White", "ImageWrap", "MirrorWrap"]
ASPECT_RATIOS = ["Landscape", "Portrait", "Square"]

GLAZES = ["Acrylic / Perspex", "Float Glass", "Gloss Varnish", "Motheye", "None"]
MOUNTS = ["1.4mm", "2.0mm", "2.4mm", "No Mount / Mat", "No Mount/mat"]
MOUNT_COLORS = ["Black", "Off White", "Snow White"]
PAPER_TYPES = [
    "Acrylic",
    "Budget Art Paper",
    "Budget Photo Paper",
    "Cold Press Watercolour Paper",
    "Cork",
    "Dibond",
    "Enhanced Matte Art Paper",
    "Glow In The Dark",
    "Gold Foil",
    "Hahnemühle German Etching",
    "Hahnemühle Photo Rag",
    "Lustre Photo Paper",
    "Metallic Canvas (mc)",
    "Recycled Canvas",
    "Silk",
    "Silver Foil",
    "Smooth Art Paper",
    "Smooth Photo Rag",
    "Standard Canvas (sc)",
]


def _empty() -> Dict[str, Any]:
    return {
        "frame_colors": [],
        "frame_styles": [],
        "glazes": [],
        "mounts": [],
        "mount_colors": [],
        "paper_types": [],
        "finishes": [],
        "edges": [],
        "wraps": [],
        "sizes": [],
        "aspect_ratios": list(ASPECT_RATIOS),
    }


def fallback_options(product_type: str) -> Dict[str, List[str]]:
    """
    Listes de valeurs connues pour un type de produit.
    - Type inconnu: toutes les listes vides sauf les ratios d'aspect
    """
    kind = (product_type or "").strip().lower()
    opts = _empty()
    if kind in ("canvas", "framed-canvas"):
        opts["finishes"] = list(FINISHES)
        opts["edges"] = list(EDGES)
        opts["wraps"] = list(WRAPS)
        if kind == "framed-canvas":
            opts["frame_colors"] = list(FRAME_COLORS)
            opts["frame_styles"] = list(FRAME_STYLES)
    elif kind == "framed-print":
        opts.update(
            frame_colors=list(FRAME_COLORS),
            frame_styles=list(FRAME_STYLES),
            glazes=list(GLAZES),
            mounts=list(MOUNTS),
            mount_colors=list(MOUNT_COLORS),
            paper_types=list(PAPER_TYPES),
            finishes=list(FINISHES),
            edges=list(EDGES),
        )
    elif kind in ("acrylic", "metal"):
        opts["finishes"] = list(FINISHES)
    return opts
