"""Pydantic schemas for bundle configurations, selections and prices.

The same models validate API payloads, serialise into the configuration
store and flow through the resolver, validator and pricing engine.
Money is integer minor units (fils, cents) except where a value is marked
as Decimal: discounted unit prices keep full precision until the final
total is rounded.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class BundleType(str, Enum):
    BIRTHDAY = "birthday"
    SPECIAL_EVENTS = "special_events"
    GIFT_SETS = "gift_sets"
    SEASONAL = "seasonal"
    CORPORATE = "corporate"
    WEDDING = "wedding"
    CUSTOM = "custom"


class ShippingPolicy(str, Enum):
    """How checkout aggregates shipping for a bundle line item."""

    PER_ITEM = "per_item"
    ONCE_PER_BUNDLE = "once_per_bundle"
    FREE = "free"
    DEFERRED = "deferred"


class SortBy(str, Enum):
    PRICE = "price"
    NAME = "name"
    DATE = "date"
    POPULARITY = "popularity"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class DiscountType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class PricingMode(str, Enum):
    BOX_FIXED_PRICE = "box_fixed_price"
    PRODUCTS_ONLY = "products_only"
    BOX_PLUS_PRODUCTS = "box_plus_products"
    INCLUDED_ITEMS_WITH_EXTRAS = "included_items_with_extras"


class ExtraItemCharging(str, Enum):
    CHEAPEST_FIRST = "cheapest_first"
    MOST_EXPENSIVE_FIRST = "most_expensive_first"


class SlotStatus(str, Enum):
    OK = "ok"
    RULE_RESOLUTION_EMPTY = "rule_resolution_empty"


class ViolationReason(str, Enum):
    BELOW_MINIMUM = "below_minimum"
    ABOVE_MAXIMUM = "above_maximum"
    ITEM_NOT_ELIGIBLE = "item_not_eligible"
    INVALID_QUANTITY = "invalid_quantity"
    UNKNOWN_SLOT = "unknown_slot"


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------

class EligibilityRule(BaseModel):
    """Include/exclude sets over category, tag, product and variation ids."""

    categories: list[int] = Field(default_factory=list)
    exclude_categories: list[int] = Field(default_factory=list)
    tags: list[int] = Field(default_factory=list)
    exclude_tags: list[int] = Field(default_factory=list)
    products: list[int] = Field(default_factory=list)
    exclude_products: list[int] = Field(default_factory=list)
    product_variations: list[int] = Field(default_factory=list)
    exclude_product_variations: list[int] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        """True when no inclusion axis is set: every product is a candidate."""
        return not (self.categories or self.tags or self.products or self.product_variations)


class SlotDisplay(BaseModel):
    custom_title: str = ""
    sort_by: SortBy = SortBy.PRICE
    sort_order: SortOrder = SortOrder.ASC
    default_item_id: Optional[int] = None  # pre-selected when still eligible
    default_quantity: int = Field(1, ge=1)
    quantity_min: int = Field(1, ge=0)
    quantity_max: int = Field(10, ge=0)
    discount_type: DiscountType = DiscountType.PERCENT
    discount_value: Decimal = Field(Decimal("0"), ge=0)
    is_optional: bool = False
    show_price: bool = True


class Slot(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    title: str = ""
    rule: EligibilityRule = Field(default_factory=EligibilityRule)
    display: SlotDisplay = Field(default_factory=SlotDisplay)


# ---------------------------------------------------------------------------
# Pricing block (one case per mode, discriminated on `mode`)
# ---------------------------------------------------------------------------

class _PricingBase(BaseModel):
    box_price: int = Field(0, ge=0)
    show_product_prices: bool = False


class BoxFixedPricePricing(_PricingBase):
    """Box price only; selected items record what ships."""

    mode: Literal["box_fixed_price"] = "box_fixed_price"


class ProductsOnlyPricing(_PricingBase):
    """Sum of discounted items; a stored box price is ignored."""

    mode: Literal["products_only"] = "products_only"


class BoxPlusProductsPricing(_PricingBase):
    mode: Literal["box_plus_products"] = "box_plus_products"


class IncludedItemsPricing(_PricingBase):
    """Box price covers `included_items_count` units; the rest are charged.

    A negative count is accepted here so a defective stored record can be
    loaded and reported as configuration_invalid instead of failing to parse.
    """

    mode: Literal["included_items_with_extras"] = "included_items_with_extras"
    included_items_count: int = 3
    extra_item_charging: ExtraItemCharging = ExtraItemCharging.CHEAPEST_FIRST


BundlePricing = Annotated[
    Union[
        BoxFixedPricePricing,
        ProductsOnlyPricing,
        BoxPlusProductsPricing,
        IncludedItemsPricing,
    ],
    Field(discriminator="mode"),
]


# ---------------------------------------------------------------------------
# Configuration aggregate
# ---------------------------------------------------------------------------

class BundleConfigurationWrite(BaseModel):
    """Every merchandiser-editable field; PUT replaces all of them at once."""

    product_id: Optional[int] = None
    title: str = Field("", max_length=255)
    bundle_type: BundleType = BundleType.CUSTOM
    shipping_policy: ShippingPolicy = ShippingPolicy.PER_ITEM
    pricing: BundlePricing = Field(default_factory=BoxFixedPricePricing)
    is_enabled: bool = False
    slots: list[Slot] = Field(default_factory=list)


class BundleConfiguration(BundleConfigurationWrite):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def slot(self, slot_id: str) -> Optional[Slot]:
        for slot in self.slots:
            if slot.id == slot_id:
                return slot
        return None


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------

class SelectedItem(BaseModel):
    item_id: int
    quantity: int = 1


# slot id -> chosen lines for that slot
Selection = dict[str, list[SelectedItem]]


class SelectionRequest(BaseModel):
    selections: Selection = Field(default_factory=dict)


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    slot_id: str
    reason: ViolationReason
    message: str
    item_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Resolution & pricing results
# ---------------------------------------------------------------------------

class EligibleItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    price: int
    category_ids: tuple[int, ...] = ()
    tag_ids: tuple[int, ...] = ()
    is_variation: bool = False
    parent_id: Optional[int] = None


class ResolvedSlot(BaseModel):
    slot: Slot
    status: SlotStatus
    items: list[EligibleItem] = Field(default_factory=list)
    # the slot's pre-selection, only when the default item is among `items`
    default: Optional[SelectedItem] = None


class PricedUnit(BaseModel):
    """One physical unit of a selected item."""

    model_config = ConfigDict(frozen=True)

    slot_id: str
    item_id: int
    unit_price: int
    discounted_price: Decimal


class PriceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: PricingMode
    currency: str
    box: int = 0
    items: Decimal = Decimal("0")
    extras: Decimal = Decimal("0")
    slot_discounts: dict[str, Decimal] = Field(default_factory=dict)
    charged_units: tuple[PricedUnit, ...] = ()
    free_units: tuple[PricedUnit, ...] = ()
    total: int


class LineItemPart(BaseModel):
    """A chosen item recorded on the cart line for order history."""

    slot_id: str
    item_id: int
    quantity: int
    unit_price_override: Optional[Decimal] = None


class ComposedLineItem(BaseModel):
    line_id: str
    configuration_id: str
    breakdown: PriceBreakdown
    items: list[LineItemPart]


class PaginatedResponse(BaseModel):
    data: list
    pagination: dict
