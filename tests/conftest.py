"""Shared fixtures: a small gift-shop catalog, configuration builders and an
in-memory SQLite session for the configuration store."""
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.models.base import Base
from verticals.bundles.catalog import CatalogItem, CatalogSnapshot, InMemoryCatalog
from verticals.bundles.models import db_models  # noqa: F401
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    BoxFixedPricePricing,
    EligibilityRule,
    SelectedItem,
    Slot,
    SlotDisplay,
)

# Categories: 5 = candles, 7 = chocolates, 8 = cards. Tag 9 = bestseller.
CATALOG = [
    CatalogItem(
        id=101, price=2000, name="Rose Candle", category_ids=(5,),
        newness=2, popularity=2,
    ),
    CatalogItem(
        id=102, price=1000, name="lavender candle", category_ids=(5,), tag_ids=(9,),
        newness=1, popularity=1,
    ),
    CatalogItem(
        id=103, price=3000, name="Dark Chocolate Box", category_ids=(7,), tag_ids=(9,),
        newness=3,
    ),
    CatalogItem(id=104, price=500, name="Greeting Card", category_ids=(8,)),
    CatalogItem(
        id=201, price=3500, name="Dark Chocolate Box - Large", category_ids=(7,),
        is_variation=True, parent_id=103,
    ),
    CatalogItem(
        id=202, price=2500, name="Dark Chocolate Box - Small", category_ids=(7,),
        is_variation=True, parent_id=103,
    ),
]


@pytest.fixture
def catalog_items():
    return list(CATALOG)


@pytest.fixture
def snapshot(catalog_items):
    return CatalogSnapshot.from_items(catalog_items)


@pytest.fixture
def catalog(catalog_items):
    return InMemoryCatalog(catalog_items)


@pytest.fixture
def make_slot():
    """Build a slot from rule and display keyword arguments."""
    def _make(slot_id: str = "main", rule: dict | None = None, **display) -> Slot:
        return Slot(
            id=slot_id,
            title=slot_id.title(),
            rule=EligibilityRule(**(rule or {})),
            display=SlotDisplay(**display),
        )
    return _make


@pytest.fixture
def make_configuration(make_slot):
    """Build an enabled configuration; one open slot unless slots are given."""
    def _make(pricing=None, slots=None, **fields) -> BundleConfiguration:
        return BundleConfiguration(
            product_id=fields.pop("product_id", 900),
            title=fields.pop("title", "Birthday Box"),
            is_enabled=fields.pop("is_enabled", True),
            pricing=pricing or BoxFixedPricePricing(box_price=5000),
            slots=slots if slots is not None else [make_slot()],
            **fields,
        )
    return _make


def pick(*pairs: tuple[int, int]) -> list[SelectedItem]:
    """Selection lines from (item_id, quantity) pairs."""
    return [SelectedItem(item_id=item_id, quantity=qty) for item_id, qty in pairs]


@pytest.fixture
def lines():
    return pick


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db_session:
        yield db_session
    await engine.dispose()
