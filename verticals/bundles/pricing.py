"""Pricing Engine: configuration + selection + snapshot -> PriceBreakdown.

A pure, deterministic function of its inputs. Unit prices are adjusted by
their slot's discount with full Decimal precision; only the final total is
rounded (half-up) to integer minor units. Any inconsistency raises, so a
caller gets either a complete breakdown or an error, never a best guess.

Modes:
- box_fixed_price: total = box price; items only record what ships
- products_only: total = sum of discounted units; box price ignored
- box_plus_products: box price + sum of discounted units
- included_items_with_extras: the box covers N units, the remaining units
  are charged; which units are charged is decided per physical unit
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import assert_never

from verticals.bundles.catalog import CatalogSnapshot
from verticals.bundles.errors import ConfigurationInvalid, SelectionInvalid
from verticals.bundles.models.schemas import (
    BoxFixedPricePricing,
    BoxPlusProductsPricing,
    BundleConfiguration,
    DiscountType,
    ExtraItemCharging,
    IncludedItemsPricing,
    PriceBreakdown,
    PricedUnit,
    PricingMode,
    ProductsOnlyPricing,
    Selection,
    SlotDisplay,
    Violation,
    ViolationReason,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# ---------------------------------------------------------------------------
# Unit prices
# ---------------------------------------------------------------------------

def discounted_unit_price(price: int, display: SlotDisplay) -> Decimal:
    """Apply a slot discount to one unit, clamped at zero."""
    if price < 0:
        raise ConfigurationInvalid(f"Catalog price {price} is negative")
    if display.discount_value < 0:
        raise ConfigurationInvalid(f"Discount value {display.discount_value} is negative")

    value = Decimal(display.discount_value)
    if display.discount_type == DiscountType.PERCENT:
        discounted = Decimal(price) * (1 - value / HUNDRED)
    else:
        discounted = Decimal(price) - value
    discounted = max(discounted, ZERO)

    if discounted < 0 or discounted > price:
        raise ConfigurationInvalid(
            f"Discounted unit price {discounted} outside [0, {price}]"
        )
    return discounted


def round_minor(amount: Decimal) -> int:
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def flatten_units(
    configuration: BundleConfiguration,
    selection: Selection,
    snapshot: CatalogSnapshot,
) -> list[PricedUnit]:
    """One PricedUnit per physical unit, in slot order then selection order."""
    violations: list[Violation] = []
    units: list[PricedUnit] = []

    for slot_id in selection:
        if configuration.slot(slot_id) is None:
            violations.append(
                Violation(
                    slot_id=slot_id,
                    reason=ViolationReason.UNKNOWN_SLOT,
                    message=f"Bundle has no slot {slot_id!r}",
                )
            )

    for slot in configuration.slots:
        for line in selection.get(slot.id, []):
            item = snapshot.get(line.item_id)
            if item is None:
                violations.append(
                    Violation(
                        slot_id=slot.id,
                        reason=ViolationReason.ITEM_NOT_ELIGIBLE,
                        message=f"Item {line.item_id} is not in the catalog",
                        item_id=line.item_id,
                    )
                )
                continue
            if line.quantity < 1:
                violations.append(
                    Violation(
                        slot_id=slot.id,
                        reason=ViolationReason.INVALID_QUANTITY,
                        message=f"Quantity for item {line.item_id} must be at least 1",
                        item_id=line.item_id,
                    )
                )
                continue
            unit = PricedUnit(
                slot_id=slot.id,
                item_id=item.id,
                unit_price=item.price,
                discounted_price=discounted_unit_price(item.price, slot.display),
            )
            units.extend([unit] * line.quantity)

    if violations:
        raise SelectionInvalid(violations)
    return units


def _slot_discounts(units: list[PricedUnit]) -> dict[str, Decimal]:
    discounts: dict[str, Decimal] = {}
    for unit in units:
        saved = Decimal(unit.unit_price) - unit.discounted_price
        discounts[unit.slot_id] = discounts.get(unit.slot_id, ZERO) + saved
    return discounts


# ---------------------------------------------------------------------------
# Extra-item charging
# ---------------------------------------------------------------------------

def split_included_units(
    units: list[PricedUnit],
    included_items_count: int,
    charging: ExtraItemCharging,
) -> tuple[list[PricedUnit], list[PricedUnit]]:
    """Split units into (charged, free).

    Units are sorted by discounted price, ascending for cheapest_first and
    descending for most_expensive_first; the first ``extra`` units of that
    order are charged, the rest are absorbed by the box price. Equal prices
    keep slot order, then item id.
    """
    if included_items_count < 0:
        raise ConfigurationInvalid(
            f"Included items count is negative ({included_items_count})"
        )

    slot_order: dict[str, int] = {}
    for unit in units:
        slot_order.setdefault(unit.slot_id, len(slot_order))
    indexed = list(enumerate(units))

    if charging == ExtraItemCharging.CHEAPEST_FIRST:
        ordered = sorted(
            indexed,
            key=lambda p: (p[1].discounted_price, slot_order[p[1].slot_id], p[1].item_id, p[0]),
        )
    elif charging == ExtraItemCharging.MOST_EXPENSIVE_FIRST:
        ordered = sorted(
            indexed,
            key=lambda p: (-p[1].discounted_price, slot_order[p[1].slot_id], p[1].item_id, p[0]),
        )
    else:
        assert_never(charging)

    included = min(included_items_count, len(units))
    extra = len(units) - included
    charged = [unit for _, unit in ordered[:extra]]
    free = [unit for _, unit in ordered[extra:]]
    return charged, free


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def price(
    configuration: BundleConfiguration,
    selection: Selection,
    snapshot: CatalogSnapshot,
    currency: str = "AED",
) -> PriceBreakdown:
    """Compute the full price breakdown for one selection."""
    pricing = configuration.pricing
    units = flatten_units(configuration, selection, snapshot)

    if isinstance(pricing, BoxFixedPricePricing):
        breakdown = PriceBreakdown(
            mode=PricingMode.BOX_FIXED_PRICE,
            currency=currency,
            box=pricing.box_price,
            free_units=tuple(units),
            total=pricing.box_price,
        )
    elif isinstance(pricing, ProductsOnlyPricing):
        items = sum((u.discounted_price for u in units), ZERO)
        breakdown = PriceBreakdown(
            mode=PricingMode.PRODUCTS_ONLY,
            currency=currency,
            box=0,
            items=items,
            slot_discounts=_slot_discounts(units),
            charged_units=tuple(units),
            total=round_minor(items),
        )
    elif isinstance(pricing, BoxPlusProductsPricing):
        items = sum((u.discounted_price for u in units), ZERO)
        breakdown = PriceBreakdown(
            mode=PricingMode.BOX_PLUS_PRODUCTS,
            currency=currency,
            box=pricing.box_price,
            items=items,
            slot_discounts=_slot_discounts(units),
            charged_units=tuple(units),
            total=round_minor(pricing.box_price + items),
        )
    elif isinstance(pricing, IncludedItemsPricing):
        charged, free = split_included_units(
            units, pricing.included_items_count, pricing.extra_item_charging
        )
        extras = sum((u.discounted_price for u in charged), ZERO)
        breakdown = PriceBreakdown(
            mode=PricingMode.INCLUDED_ITEMS_WITH_EXTRAS,
            currency=currency,
            box=pricing.box_price,
            extras=extras,
            slot_discounts=_slot_discounts(charged),
            charged_units=tuple(charged),
            free_units=tuple(free),
            total=round_minor(pricing.box_price + extras),
        )
    else:
        assert_never(pricing)

    logger.debug(
        "Priced bundle selection",
        extra={
            "configuration_id": configuration.id,
            "mode": breakdown.mode.value,
            "units": len(units),
            "total": breakdown.total,
        },
    )
    return breakdown
