"""
Résolution des options disponibles par type de produit.

- Interroge l'index catalogue (facettes) pour un type + pays + filtres
- Fusion champ par champ: une valeur live non vide l'emporte, sinon table de secours
- Désaccords live / secours sur les drapeaux has_* signalés (conflicts + warning), pas tranchés en silence
- Cache 5 min par (type, pays, filtres); un résultat dégradé (index injoignable) n'est pas mis en cache
"""
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from storefront.config import FACET_CACHE_MAX_ENTRIES, FACET_CACHE_TTL_SECONDS
from storefront.attributes.models import FrameConfiguration
from storefront.catalog.query import DEFAULT_CATEGORY
from storefront.catalog.search import SearchClient, get_search_client
from .fallbacks import PRODUCT_TYPE_MAP, fallback_options
from .normalize import aspect_ratio_bounds, aspect_ratios_from_ranges, facet_values, process_frame_styles

logger = logging.getLogger(__name__)

# (champ de liste, drapeau, clé de facette brute ou None si jamais renvoyée par l'index)
OPTION_FAMILIES: Tuple[Tuple[str, Optional[str], Optional[str]], ...] = (
    ("frame_colors", "has_frame_color", "frameColour"),
    ("frame_styles", "has_frame_style", "frame"),
    ("glazes", "has_glaze", "glaze"),
    ("mounts", "has_mount", "mount"),
    ("mount_colors", "has_mount_color", "mountColour"),
    ("paper_types", "has_paper_type", "paperType"),
    ("finishes", "has_finish", "finish"),
    ("edges", "has_edge", "edge"),
    ("wraps", "has_wrap", None),
    ("sizes", None, "size"),
)


class AvailableOptions(BaseModel):
    product_type: str
    country: str
    has_frame_color: bool = False
    has_frame_style: bool = False
    has_glaze: bool = False
    has_mount: bool = False
    has_mount_color: bool = False
    has_paper_type: bool = False
    has_finish: bool = False
    has_edge: bool = False
    has_wrap: bool = False
    has_aspect_ratio: bool = True
    frame_colors: List[str] = Field(default_factory=list)
    frame_styles: List[str] = Field(default_factory=list)
    glazes: List[str] = Field(default_factory=list)
    mounts: List[str] = Field(default_factory=list)
    mount_colors: List[str] = Field(default_factory=list)
    paper_types: List[str] = Field(default_factory=list)
    finishes: List[str] = Field(default_factory=list)
    edges: List[str] = Field(default_factory=list)
    wraps: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    aspect_ratios: List[str] = Field(default_factory=list)
    sources: Dict[str, str] = Field(default_factory=dict)
    conflicts: List[str] = Field(default_factory=list)
    degraded: bool = False


class FacetCache:
    """
    Cache TTL par clé, horloge injectable, dernier écrivain gagnant.
    - Entrées expirées purgées à chaque écriture; au-delà de max_entries la plus ancienne est évincée
    """

    def __init__(
        self,
        ttl_seconds: int = FACET_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        max_entries: int = FACET_CACHE_MAX_ENTRIES,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[float, AvailableOptions]] = {}

    def get(self, key: str) -> Optional[AvailableOptions]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            self._entries.pop(key, None)
            return None
        return value

    def put(self, key: str, value: AvailableOptions) -> None:
        now = self._clock()
        expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for k in expired:
            del self._entries[k]
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
        self._entries[key] = (now, value)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


def cache_key(product_type: str, country: str, filters: Optional[Dict[str, Any]]) -> str:
    suffix = json.dumps(filters, sort_keys=True) if filters else "default"
    return f"{product_type.lower()}-{country.upper()}-{suffix}"


def merge_options(
    product_type: str,
    country: str,
    facets: Optional[Dict[str, Any]],
) -> AvailableOptions:
    """
    Fusionne facettes live et table de secours, champ par champ.
    - facets None: index indisponible, secours complet (degraded=True)
    """
    fallback = fallback_options(product_type)
    merged: Dict[str, Any] = {"product_type": product_type, "country": country}
    sources: Dict[str, str] = {}
    conflicts: List[str] = []

    for field, flag, facet_key in OPTION_FAMILIES:
        live: List[str] = []
        if facets is not None and facet_key:
            live = facet_values(facets.get(facet_key))
            if field == "frame_styles":
                live = process_frame_styles(live, product_type)
        fallback_values = fallback[field]
        if field == "frame_styles":
            fallback_values = process_frame_styles(fallback_values, product_type)

        if live:
            merged[field] = live
            sources[field] = "live"
        else:
            merged[field] = list(fallback_values)
            sources[field] = "fallback"

        if flag:
            merged[flag] = bool(merged[field])
            live_answered = facets is not None and facet_key is not None and bool(facets)
            if live_answered and bool(live) != bool(fallback_values):
                conflicts.append(flag)

    ranges = (facets or {}).get("productAspectRatio")
    merged["aspect_ratios"] = aspect_ratios_from_ranges(ranges)
    sources["aspect_ratios"] = "live" if ranges else "fallback"
    merged["has_aspect_ratio"] = bool(merged["aspect_ratios"])

    if conflicts:
        logger.warning(
            "facets.merge live/fallback disagree product_type=%s country=%s flags=%s",
            product_type, country, conflicts,
        )
    return AvailableOptions(**merged, sources=sources, conflicts=conflicts, degraded=facets is None)


class FacetService:
    def __init__(self, search: Optional[SearchClient] = None, cache: Optional[FacetCache] = None):
        self._search = search
        self.cache = cache or FacetCache()

    @property
    def search(self) -> SearchClient:
        return self._search or get_search_client()

    def _search_filters(self, product_type: str, country: str, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        filters: Dict[str, Any] = {
            "country": country,
            "category": DEFAULT_CATEGORY,
            "product_types": PRODUCT_TYPE_MAP.get(product_type.lower(), [product_type]),
        }
        for key, value in (extra or {}).items():
            if key == "aspect_ratio_label":
                filters.update(aspect_ratio_bounds(value))
            elif value not in (None, "", []):
                filters[key] = value
        return filters

    def available_options(
        self,
        product_type: str,
        country: str = "US",
        extra_filters: Optional[Dict[str, Any]] = None,
    ) -> AvailableOptions:
        """
        Options disponibles pour (type, pays, filtres). Ne lève pas: repli sur les tables connues.
        """
        country = (country or "US").upper()
        key = cache_key(product_type, country, extra_filters)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            facets = self.search.facets(self._search_filters(product_type, country, extra_filters))
        except Exception as e:
            logger.warning("facets.available_options search failed product_type=%s country=%s: %s", product_type, country, e)
            return merge_options(product_type, country, None)

        options = merge_options(product_type, country, facets)
        self.cache.put(key, options)
        return options

    def validate_configuration(
        self,
        product_type: str,
        config: FrameConfiguration,
        country: str = "US",
    ) -> Tuple[bool, List[str]]:
        """
        Vérifie qu'une configuration est proposable pour le type de produit.
        Retour: (valid, errors)
        """
        options = self.available_options(product_type, country)
        errors: List[str] = []

        frame_color = config.requested("frame_color")
        if frame_color and not options.has_frame_color:
            errors.append("Frame color is not available for this product type")
        elif frame_color and options.frame_colors and frame_color.lower() not in {c.lower() for c in options.frame_colors}:
            errors.append(f'Frame color "{frame_color}" is not available')

        if config.requested("glaze") and not options.has_glaze:
            errors.append("Glaze is not available for this product type")
        if config.requested("mount") and not options.has_mount:
            errors.append("Mount is not available for this product type")
        if config.requested("wrap") and not options.has_wrap:
            errors.append("Wrap is not available for this product type")

        return (not errors, errors)

    def clear_cache(self) -> None:
        self.cache.clear()


_service: Optional[FacetService] = None

def get_facet_service() -> FacetService:
    global _service
    if _service is None:
        _service = FacetService()
    return _service
