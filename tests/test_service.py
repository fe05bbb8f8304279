"""Test the storefront-facing bundle service end to end (in-memory catalog,
cart and database)."""
import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from patterns.domain_config import CatalogConfig, StorefrontConfig
from verticals.bundles.cart import InMemoryCart
from verticals.bundles.errors import (
    CatalogUnavailable,
    ConfigurationInvalid,
    ConfigurationNotFound,
    SelectionInvalid,
)
from verticals.bundles.models.db_models import BundleConfigurationRecord
from verticals.bundles.models.schemas import (
    BoxPlusProductsPricing,
    IncludedItemsPricing,
    ShippingPolicy,
    SlotStatus,
    ViolationReason,
)
from verticals.bundles.repository import BundleConfigurationRepository
from verticals.bundles.service import BundleService


class FailingCatalog:
    async def list_items(self, item_filter):
        raise ConnectionError("connection refused")


class SlowCatalog:
    async def list_items(self, item_filter):
        await asyncio.sleep(1)
        return []


@pytest.fixture
def repo(session):
    return BundleConfigurationRepository(session)


@pytest.fixture
def cart():
    return InMemoryCart()


@pytest.fixture
def service(repo, catalog, cart):
    return BundleService(repo, catalog, cart, config=StorefrontConfig())


@pytest_asyncio.fixture
async def gift_box(repo, make_slot, make_configuration):
    """Chocolate (required, 10% off) + card (optional) on box_plus_products."""
    return await repo.create(make_configuration(
        pricing=BoxPlusProductsPricing(box_price=5000),
        shipping_policy=ShippingPolicy.ONCE_PER_BUNDLE,
        slots=[
            make_slot(
                "chocolates",
                rule={"categories": [7], "product_variations": [201, 202]},
                quantity_min=1, quantity_max=2, discount_value=10,
            ),
            make_slot("cards", rule={"categories": [8]}, is_optional=True),
        ],
    ))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_resolve_slots_uses_one_snapshot(service, catalog, gift_box):
    resolved = await service.resolve_slots(gift_box.id)
    assert catalog.calls == 1
    assert [r.slot.id for r in resolved] == ["chocolates", "cards"]
    assert [i.id for i in resolved[0].items] == [202, 103, 201]
    assert [i.id for i in resolved[1].items] == [104]


@pytest.mark.asyncio
async def test_empty_slot_is_reported_not_raised(repo, service, make_slot, make_configuration):
    configuration = await repo.create(make_configuration(
        slots=[make_slot("gone", rule={"products": [999]})]
    ))
    resolved = await service.resolve_slots(configuration.id)
    assert resolved[0].status == SlotStatus.RULE_RESOLUTION_EMPTY


@pytest.mark.asyncio
async def test_disabled_configuration_is_not_found(repo, service, make_configuration):
    draft = await repo.create(make_configuration(is_enabled=False))
    with pytest.raises(ConfigurationNotFound):
        await service.resolve_slots(draft.id)
    with pytest.raises(ConfigurationNotFound):
        await service.price_selection("missing", {})


@pytest.mark.asyncio
async def test_defective_stored_configuration_is_refused(repo, service, make_configuration):
    broken = make_configuration(pricing=IncludedItemsPricing(included_items_count=-1))
    await repo.create_row({"id": broken.id, **BundleConfigurationRecord.columns_for(broken)})
    with pytest.raises(ConfigurationInvalid):
        await service.price_selection(broken.id, {})


# ---------------------------------------------------------------------------
# Catalog failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_catalog_failure_is_catalog_unavailable(repo, gift_box):
    service = BundleService(repo, FailingCatalog(), InMemoryCart())
    with pytest.raises(CatalogUnavailable):
        await service.resolve_slots(gift_box.id)


@pytest.mark.asyncio
async def test_catalog_timeout_is_catalog_unavailable(repo, gift_box):
    config = StorefrontConfig(catalog=CatalogConfig(timeout_seconds=0.01))
    service = BundleService(repo, SlowCatalog(), InMemoryCart(), config=config)
    with pytest.raises(CatalogUnavailable):
        await service.price_selection(gift_box.id, {})


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_price_selection(service, catalog, gift_box, lines):
    breakdown = await service.price_selection(
        gift_box.id, {"chocolates": lines((103, 1)), "cards": lines((104, 1))}
    )
    assert catalog.calls == 1
    assert breakdown.box == 5000
    assert breakdown.items == Decimal("3200")
    assert breakdown.total == 8200
    assert breakdown.currency == "AED"


@pytest.mark.asyncio
async def test_price_selection_reports_all_violations(service, gift_box, lines):
    with pytest.raises(SelectionInvalid) as exc_info:
        await service.price_selection(gift_box.id, {"cards": lines((101, 1))})
    assert {(v.slot_id, v.reason) for v in exc_info.value.violations} == {
        ("chocolates", ViolationReason.BELOW_MINIMUM),
        ("cards", ViolationReason.ITEM_NOT_ELIGIBLE),
    }


@pytest.mark.asyncio
async def test_shipping_policy(service, gift_box):
    assert await service.shipping_policy(gift_box.id) == ShippingPolicy.ONCE_PER_BUNDLE


# ---------------------------------------------------------------------------
# Add to cart
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_to_cart_freezes_quoted_total(service, cart, gift_box, lines):
    selection = {"chocolates": lines((202, 2))}
    quoted = await service.price_selection(gift_box.id, selection)
    line = await service.add_to_cart(gift_box.id, selection)

    assert line.breakdown.total == quoted.total == 9500
    stored = cart.lines[line.line_id]
    assert stored["total_override"] == quoted.total
    assert stored["product_id"] == gift_box.product_id
    assert stored["metadata"]["bundle_configuration_id"] == gift_box.id
    assert stored["metadata"]["shipping_policy"] == "once_per_bundle"

    [part] = line.items
    assert (part.slot_id, part.item_id, part.quantity) == ("chocolates", 202, 2)
    assert part.unit_price_override == Decimal("2250")


@pytest.mark.asyncio
async def test_add_to_cart_without_unit_overrides_for_box_modes(
    repo, service, make_configuration, lines
):
    configuration = await repo.create(make_configuration(
        product_id=901,
        pricing=IncludedItemsPricing(box_price=5000, included_items_count=1),
    ))
    line = await service.add_to_cart(configuration.id, {"main": lines((101, 1), (104, 1))})
    assert line.breakdown.total == 5500
    assert all(part.unit_price_override is None for part in line.items)


@pytest.mark.asyncio
async def test_invalid_selection_adds_nothing(service, cart, gift_box, lines):
    with pytest.raises(SelectionInvalid):
        await service.add_to_cart(gift_box.id, {"chocolates": lines((104, 1))})
    assert cart.lines == {}
