"""
Construction des requêtes OData pour l'index de recherche du catalogue.
- Filtres: pays de destination, catégorie, types de produit, attributs tableaux (search.in), plages
- Paramètres: api-version, search=*, $count, $top/$skip, facettes nommées
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

API_VERSION = "2016-09-01"
DEFAULT_CATEGORY = "Wall art"

# Clé de filtre (snake_case côté service) -> champ tableau de l'index
ARRAY_FILTER_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("frame_colors", "frameColour"),
    ("frame_styles", "frame"),
    ("glazes", "glaze"),
    ("mounts", "mount"),
    ("mount_colors", "mountColour"),
    ("paper_types", "paperType"),
    ("finishes", "finish"),
    ("edges", "edge"),
)

FACETS: Tuple[str, ...] = (
    "frame,count:100",
    "frameColour,count:100",
    "glaze,count:100",
    "mount,count:100",
    "mountColour,count:100",
    "paperType,count:100",
    "finish,count:100",
    "edge",
    "size,count:100",
    "maxProductDimensionsMm,values:300|500|700|1000|1500",
    "productAspectRatio,values:95|105",
    "category",
    "style,count:100",
)


def escape_odata(value: Any) -> str:
    """Échappe une valeur de chaîne OData (doublement des apostrophes)."""
    return str(value).replace("'", "''")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(v) for v in value if v is not None and str(v).strip()]


def build_filter(filters: Dict[str, Any]) -> str:
    """
    Construit l'expression $filter.
    - country est obligatoire (destinationCountries/any)
    - product_types: égalité simple, ou OR entre parenthèses si plusieurs
    """
    country = str(filters.get("country") or "").strip().upper()
    if not country:
        raise ValueError("country est obligatoire pour la recherche catalogue")

    parts: List[str] = [f"destinationCountries/any(c: c eq '{escape_odata(country)}')"]

    category = filters.get("category")
    if category:
        parts.append(f"category eq '{escape_odata(category)}'")

    for key, field in ARRAY_FILTER_FIELDS:
        values = _as_list(filters.get(key))
        if values:
            joined = escape_odata("|".join(values))
            parts.append(f"{field}/any(t: search.in(t, '{joined}', '|'))")

    product_types = _as_list(filters.get("product_types"))
    if len(product_types) == 1:
        parts.append(f"productType eq '{escape_odata(product_types[0])}'")
    elif product_types:
        ors = " or ".join(f"productType eq '{escape_odata(t)}'" for t in product_types)
        parts.append(f"({ors})")

    if filters.get("min_dimension_mm") is not None:
        parts.append(f"maxProductDimensionsMm ge {filters['min_dimension_mm']}")
    if filters.get("max_dimension_mm") is not None:
        parts.append(f"maxProductDimensionsMm le {filters['max_dimension_mm']}")
    if filters.get("aspect_ratio_min") is not None:
        parts.append(f"productAspectRatio ge {filters['aspect_ratio_min']}")
    if filters.get("aspect_ratio_max") is not None:
        parts.append(f"productAspectRatio le {filters['aspect_ratio_max']}")
    if filters.get("aspect_ratio_above") is not None:
        parts.append(f"productAspectRatio gt {filters['aspect_ratio_above']}")
    if filters.get("aspect_ratio_below") is not None:
        parts.append(f"productAspectRatio lt {filters['aspect_ratio_below']}")

    return " and ".join(parts)


def build_params(
    filters: Dict[str, Any],
    *,
    top: int = 0,
    skip: Optional[int] = None,
    facets: Iterable[str] = FACETS,
) -> List[Tuple[str, str]]:
    """
    Paramètres de requête (liste de paires: 'facet' est répété).
    - top=0: requête de facettes uniquement
    """
    params: List[Tuple[str, str]] = [
        ("api-version", API_VERSION),
        ("search", "*"),
        ("$count", "true"),
        ("$top", str(top)),
    ]
    if skip:
        params.append(("$skip", str(skip)))
    params.append(("$filter", build_filter(filters)))
    for facet in facets:
        params.append(("facet", facet))
    return params
