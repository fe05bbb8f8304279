"""Bundle service: the operations the storefront and checkout call.

Each operation loads the configuration (aggregate root), fetches exactly one
catalog snapshot and runs the pure resolver/validator/pricing functions
against it. Disabled configurations are invisible here.
"""

import logging
from functools import lru_cache

from fastapi import Depends

from patterns.domain_config import StorefrontConfig
from verticals.bundles.cart import CartLineItemAdder
from verticals.bundles.catalog import (
    CatalogLookup,
    CatalogSnapshot,
    fetch_snapshot,
    filter_for,
)
from verticals.bundles.config import config as default_config
from verticals.bundles.errors import ConfigurationNotFound, SelectionInvalid
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    ComposedLineItem,
    LineItemPart,
    PriceBreakdown,
    PricingMode,
    ResolvedSlot,
    Selection,
    ShippingPolicy,
)
from verticals.bundles.pricing import price
from verticals.bundles.repository import (
    BundleConfigurationRepository,
    get_bundle_repository,
)
from verticals.bundles.resolver import eligible_ids_by_slot, resolve_configuration
from verticals.bundles.rules import check_configuration
from verticals.bundles.validator import validate_selection
from verticals.bundles.woocommerce import CoCartLineItemAdder, WooCommerceCatalog

logger = logging.getLogger(__name__)


class BundleService:
    """Resolve, price and add bundles to the cart."""

    def __init__(
        self,
        repository: BundleConfigurationRepository,
        catalog: CatalogLookup,
        cart: CartLineItemAdder | None = None,
        config: StorefrontConfig = default_config,
    ):
        self.repository = repository
        self.catalog = catalog
        self.cart = cart
        self.config = config

    # -- Loading --

    async def load_live(self, configuration_id: str) -> BundleConfiguration:
        """Enabled, integrity-checked configuration or ConfigurationNotFound."""
        configuration = await self.repository.get(configuration_id)
        if configuration is None or not configuration.is_enabled:
            raise ConfigurationNotFound(
                f"No live bundle configuration {configuration_id}",
                configuration_id=configuration_id,
            )
        check_configuration(configuration)
        return configuration

    async def snapshot_for(self, configuration: BundleConfiguration) -> CatalogSnapshot:
        return await fetch_snapshot(
            self.catalog,
            filter_for(configuration),
            timeout=self.config.catalog.timeout_seconds,
        )

    # -- Operations --

    async def resolve_slots(self, configuration_id: str) -> list[ResolvedSlot]:
        configuration = await self.load_live(configuration_id)
        snapshot = await self.snapshot_for(configuration)
        resolved = resolve_configuration(configuration, snapshot)

        empty = [r.slot.id for r in resolved if not r.items]
        if empty:
            logger.info(
                "Bundle slots resolved empty",
                extra={"configuration_id": configuration_id, "slots": empty},
            )
        return resolved

    async def _price_checked(
        self, configuration: BundleConfiguration, selection: Selection
    ) -> PriceBreakdown:
        snapshot = await self.snapshot_for(configuration)
        resolved = resolve_configuration(configuration, snapshot)

        violations = validate_selection(
            configuration, selection, eligible_ids_by_slot(resolved)
        )
        if violations:
            logger.info(
                "Bundle selection rejected",
                extra={
                    "configuration_id": configuration.id,
                    "reasons": sorted({v.reason.value for v in violations}),
                },
            )
            raise SelectionInvalid(violations)

        return price(
            configuration, selection, snapshot, currency=self.config.pricing.currency
        )

    async def price_selection(
        self, configuration_id: str, selection: Selection
    ) -> PriceBreakdown:
        configuration = await self.load_live(configuration_id)
        return await self._price_checked(configuration, selection)

    async def shipping_policy(self, configuration_id: str) -> ShippingPolicy:
        configuration = await self.load_live(configuration_id)
        return configuration.shipping_policy

    async def add_to_cart(
        self, configuration_id: str, selection: Selection
    ) -> ComposedLineItem:
        """Re-validate against the live catalog, freeze the price, add one line."""
        if self.cart is None:
            raise RuntimeError("BundleService was created without a cart adder")

        configuration = await self.load_live(configuration_id)
        breakdown = await self._price_checked(configuration, selection)
        parts = line_item_parts(configuration, selection, breakdown)

        line_id = await self.cart.add_composed_line_item(
            configuration.product_id,
            parts,
            total_override=breakdown.total,
            metadata={
                "bundle_configuration_id": configuration.id,
                "bundle_title": configuration.title,
                "shipping_policy": configuration.shipping_policy.value,
                "breakdown": breakdown.model_dump(mode="json"),
            },
        )
        logger.info(
            "Bundle added to cart",
            extra={
                "configuration_id": configuration.id,
                "line_id": line_id,
                "total": breakdown.total,
            },
        )
        return ComposedLineItem(
            line_id=line_id,
            configuration_id=configuration.id,
            breakdown=breakdown,
            items=parts,
        )


def line_item_parts(
    configuration: BundleConfiguration,
    selection: Selection,
    breakdown: PriceBreakdown,
) -> list[LineItemPart]:
    """Chosen items as cart metadata.

    Items carry their discounted unit price only in modes where each unit
    is charged at that price; otherwise the line total is authoritative.
    """
    per_unit = breakdown.mode in (PricingMode.PRODUCTS_ONLY, PricingMode.BOX_PLUS_PRODUCTS)
    unit_prices = {(u.slot_id, u.item_id): u.discounted_price for u in breakdown.charged_units}

    parts: list[LineItemPart] = []
    for slot in configuration.slots:
        for line in selection.get(slot.id, []):
            parts.append(
                LineItemPart(
                    slot_id=slot.id,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price_override=(
                        unit_prices.get((slot.id, line.item_id)) if per_unit else None
                    ),
                )
            )
    return parts


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------

@lru_cache
def get_catalog() -> CatalogLookup:
    """Shared catalog adapter (keeps circuit-breaker state across requests)."""
    return WooCommerceCatalog(default_config.catalog)


@lru_cache
def get_cart() -> CartLineItemAdder:
    return CoCartLineItemAdder(
        default_config.cart,
        currency_minor_unit=default_config.pricing.currency_minor_unit,
    )


def get_bundle_service(
    repository: BundleConfigurationRepository = Depends(get_bundle_repository),
    catalog: CatalogLookup = Depends(get_catalog),
    cart: CartLineItemAdder = Depends(get_cart),
) -> BundleService:
    """FastAPI dependency for BundleService."""
    return BundleService(repository, catalog, cart)
