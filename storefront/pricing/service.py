"""
Agrégation de devis (calculateur de prix).

Étapes de price():
  1) SKU de base (suffixe image retiré) + résolution d'attributs par ligne
  2) Fusion des lignes équivalentes (base_sku + JSON trié des attributs), copies sommées
  3) Comparaison multi-méthodes, puis un seul repli en devis direct; PricingError si aucun devis
  4) Sélection du devis (méthode demandée -> Standard -> premier)
  5) Taxe forfaitaire par pays sur le coût articles, total avant conversion
  6) Conversion composante par composante, total recalculé à partir des parts converties
"""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from storefront.config import DEFAULT_SHIPPING_METHOD, PRICE_MISMATCH_THRESHOLD
from storefront.errors import pricing_error, shipping_error, upstream_details, CheckoutError
from storefront.attributes.models import FrameConfiguration
from storefront.attributes.resolver import resolve_attributes
from storefront.cart.models import CartLineItem
from storefront.catalog.client import CatalogClient, get_catalog_client
from storefront.currency.service import CurrencyService, get_currency_service, round_amount
from .models import PriceMismatch, PricingResult, Quote, QuoteItem
from .shipping import estimated_days, select_quote, shipping_options as _options_from_quotes
from .sku import extract_base_sku
from .tax import tax_rate

logger = logging.getLogger(__name__)


def quote_item_key(item: QuoteItem) -> str:
    return f"{item.base_sku}:{json.dumps(item.attributes, sort_keys=True)}"


def merge_quote_items(items: Sequence[QuoteItem]) -> List[QuoteItem]:
    """
    Fusionne les lignes équivalentes en sommant les copies.
    - Résultat trié par clé: indépendant de l'ordre d'entrée
    """
    merged: Dict[str, QuoteItem] = {}
    for item in items:
        key = quote_item_key(item)
        if key in merged:
            current = merged[key]
            merged[key] = current.model_copy(update={"copies": current.copies + item.copies})
        else:
            merged[key] = item
    return [merged[k] for k in sorted(merged)]


class PricingService:
    def __init__(
        self,
        catalog: Optional[CatalogClient] = None,
        currency: Optional[CurrencyService] = None,
        use_product_schema: bool = True,
    ):
        self._catalog = catalog
        self._currency = currency
        self.use_product_schema = use_product_schema

    @property
    def catalog(self) -> CatalogClient:
        return self._catalog or get_catalog_client()

    @property
    def currency(self) -> CurrencyService:
        return self._currency or get_currency_service()

    def _product_schema(self, base_sku: str, memo: Dict[str, Optional[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
        """Attributs valides du produit (None -> résolution heuristique)."""
        if not self.use_product_schema:
            return None
        if base_sku not in memo:
            try:
                product = self.catalog.get_product(base_sku)
                memo[base_sku] = product.get("attributes") or None
            except Exception as e:
                logger.info("pricing.product_schema unavailable sku=%s, heuristic mode: %s", base_sku, e)
                memo[base_sku] = None
        return memo[base_sku]

    def resolve_line_attributes(self, sku: str, config: FrameConfiguration) -> Dict[str, Any]:
        """Attributs catalogue d'un SKU + configuration, avec le mode de résolution utilisé."""
        base_sku = extract_base_sku(sku)
        schema = self._product_schema(base_sku, {}) if base_sku else None
        return {
            "base_sku": base_sku,
            "mode": "schema" if schema else "heuristic",
            "attributes": resolve_attributes(config, base_sku, schema),
        }

    def build_quote_items(self, items: Sequence[CartLineItem]) -> List[QuoteItem]:
        memo: Dict[str, Optional[Dict[str, Any]]] = {}
        quote_items: List[QuoteItem] = []
        for line in items:
            base_sku = extract_base_sku(line.sku)
            if not base_sku:
                logger.warning("pricing.build_quote_items skipped line without sku id=%s", line.id)
                continue
            attrs = resolve_attributes(line.frame_config, base_sku, self._product_schema(base_sku, memo))
            quote_items.append(QuoteItem(base_sku=base_sku, copies=line.quantity, attributes=attrs))
        return merge_quote_items(quote_items)

    def fetch_quotes(self, country: str, quote_items: Sequence[QuoteItem], method: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Devis catalogue: comparaison multi-méthodes, sinon un appel direct.
        Lève PricingError si les deux tentatives échouent ou ne renvoient rien.
        """
        payload = [qi.to_request() for qi in quote_items]
        quotes: List[Dict[str, Any]] = []
        try:
            quotes = self.catalog.compare_shipping_methods(country, payload)
        except Exception as e:
            logger.warning("pricing.fetch_quotes compare failed country=%s, direct quote: %s", country, e)

        if not quotes:
            try:
                quotes = self.catalog.create_quote({
                    "destinationCountryCode": country,
                    "items": payload,
                    "shippingMethod": method or DEFAULT_SHIPPING_METHOD,
                })
            except Exception as e:
                logger.error("pricing.fetch_quotes direct quote failed country=%s: %s", country, e)
                raise pricing_error(
                    "No quotes available for this destination",
                    code="NO_QUOTES",
                    details=upstream_details(e, country=country, items=len(payload)),
                )
        if not quotes:
            raise pricing_error("No quotes available for this destination", code="NO_QUOTES", details={"country": country})
        return quotes

    def price(
        self,
        items: Sequence[CartLineItem],
        destination_country: str,
        shipping_method: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> PricingResult:
        country = (destination_country or "").strip().upper()
        method = shipping_method or DEFAULT_SHIPPING_METHOD
        if not items:
            target = (currency or "USD").upper()
            return PricingResult(
                subtotal=0.0, shipping=0.0, tax=0.0, total=0.0,
                currency=target, original_currency=target, original_total=0.0,
                exchange_rate=1.0, shipping_method=method, estimated_days=estimated_days(method),
            )

        quote_items = self.build_quote_items(items)
        if not quote_items:
            raise pricing_error("No priceable items", code="NO_PRICEABLE_ITEMS")
        raw = select_quote(self.fetch_quotes(country, quote_items, method), method)
        quote = Quote.from_catalog(raw)

        source_currency = quote.currency
        subtotal = quote.items_cost
        shipping = quote.shipping_cost
        tax = subtotal * tax_rate(country)
        original_total = round_amount(subtotal + shipping + tax, source_currency)

        target = (currency or source_currency).upper()
        exchange_rate: Optional[float] = 1.0
        if target != source_currency:
            subtotal = self.currency.convert(subtotal, source_currency, target)
            shipping = self.currency.convert(shipping, source_currency, target)
            tax = self.currency.convert(tax, source_currency, target)
        else:
            subtotal = round_amount(subtotal, target)
            shipping = round_amount(shipping, target)
            tax = round_amount(tax, target)
        total = round_amount(subtotal + shipping + tax, target)
        if target != source_currency:
            exchange_rate = (total / original_total) if original_total else self.currency.rate(source_currency, target)

        logger.info(
            "pricing.price country=%s method=%s lines=%s quote_items=%s total=%s %s",
            country, quote.shipping_method, len(items), len(quote_items), total, target,
        )
        return PricingResult(
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=total,
            currency=target,
            original_currency=source_currency,
            original_total=original_total,
            exchange_rate=exchange_rate,
            shipping_method=quote.shipping_method,
            estimated_days=estimated_days(quote.shipping_method),
        )

    def shipping_options(self, items: Sequence[CartLineItem], country: str) -> List[Dict[str, Any]]:
        """Options d'expédition disponibles; ShippingError si aucun devis n'est obtenu."""
        try:
            quotes = self.fetch_quotes(country.upper(), self.build_quote_items(items))
        except CheckoutError as e:
            raise shipping_error("Failed to calculate shipping", code="NO_SHIPPING_OPTIONS", details=e.details)
        return _options_from_quotes(quotes)

    def validate_prices(self, items: Sequence[CartLineItem], country: str = "US") -> Dict[str, Any]:
        """
        Compare un prix unitaire fraîchement coté au prix catalogue stocké (seuil 5%).
        - Consultatif: n'applique aucune correction
        - Une ligne non cotable est listée dans 'unavailable', jamais une erreur
        """
        mismatches: List[PriceMismatch] = []
        unavailable: List[str] = []
        for line in items:
            try:
                quote_items = self.build_quote_items([line])
                raw = select_quote(self.fetch_quotes(country.upper(), quote_items), DEFAULT_SHIPPING_METHOD)
            except CheckoutError:
                unavailable.append(line.id)
                continue
            quote = Quote.from_catalog(raw)
            quoted = quote.items_cost / line.quantity if line.quantity else 0.0
            if quote.currency != "USD":
                quoted = self.currency.convert(quoted, quote.currency, "USD")
            catalog_price = line.original_price
            if catalog_price <= 0:
                continue
            difference = quoted - catalog_price
            percent = abs(difference) / catalog_price
            if percent > PRICE_MISMATCH_THRESHOLD:
                mismatches.append(PriceMismatch(
                    item_id=line.id,
                    sku=line.sku,
                    catalog_price=round_amount(catalog_price, "USD"),
                    quoted_price=round_amount(quoted, "USD"),
                    difference=round_amount(difference, "USD"),
                    percent_difference=round(percent * 100, 2),
                ))
        if mismatches:
            logger.warning("pricing.validate_prices mismatches=%s", [m.item_id for m in mismatches])
        return {
            "is_valid": not mismatches,
            "mismatches": [m.model_dump() for m in mismatches],
            "unavailable": unavailable,
        }


_service: Optional[PricingService] = None

def get_pricing_service() -> PricingService:
    global _service
    if _service is None:
        _service = PricingService()
    return _service
