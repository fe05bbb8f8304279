"""Catalog Lookup surface consumed by the bundle engine.

The engine never reads the catalog ambiently: a pass fetches one
CatalogSnapshot and hands it to the pure resolver and pricing functions, so
every slot of a configuration sees the same catalog view.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator, Protocol

from verticals.bundles.errors import CatalogUnavailable
from verticals.bundles.models.schemas import BundleConfiguration, SortBy

logger = logging.getLogger(__name__)

# Sort keys that come from catalog-side ranks rather than item fields
RANKED_SORT_KEYS = frozenset({SortBy.DATE, SortBy.POPULARITY})


# ---------------------------------------------------------------------------
# Items & filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogItem:
    """A product or variation as the catalog reports it."""

    id: int
    price: int  # minor units
    name: str = ""
    category_ids: tuple[int, ...] = ()
    tag_ids: tuple[int, ...] = ()
    is_variation: bool = False
    parent_id: int | None = None
    newness: int | None = None  # rank, 1 = newest
    popularity: int | None = None  # rank, 1 = best seller


@dataclass(frozen=True)
class CatalogFilter:
    """Union filter: an item matches if any populated criterion matches.

    An empty filter means the whole catalog. ``ranked_by`` names the sort
    keys whose ranks (``newness``, ``popularity``) the lookup must fill in;
    it does not narrow the item set.
    """

    ids: frozenset[int] = frozenset()
    category_ids: frozenset[int] = frozenset()
    tag_ids: frozenset[int] = frozenset()
    ranked_by: frozenset[SortBy] = frozenset()

    @property
    def is_unrestricted(self) -> bool:
        return not (self.ids or self.category_ids or self.tag_ids)

    def matches(self, item: CatalogItem) -> bool:
        if self.is_unrestricted:
            return True
        return (
            item.id in self.ids
            or not self.category_ids.isdisjoint(item.category_ids)
            or not self.tag_ids.isdisjoint(item.tag_ids)
        )


class CatalogLookup(Protocol):
    """Returns the items matching a filter, plus the parent product of every
    variation it returns."""

    async def list_items(self, item_filter: CatalogFilter) -> list[CatalogItem]:
        ...


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable id -> item view of the catalog at one instant."""

    items: dict[int, CatalogItem] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_items(cls, items: Iterable[CatalogItem]) -> "CatalogSnapshot":
        return cls(items={item.id: item for item in items})

    def get(self, item_id: int) -> CatalogItem | None:
        return self.items.get(item_id)

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self.items.values())

    def __len__(self) -> int:
        return len(self.items)


def filter_for(configuration: BundleConfiguration) -> CatalogFilter:
    """Smallest catalog filter that covers every slot of a configuration.

    A slot with an open rule needs the whole catalog, so it widens the
    filter to unrestricted. Slots sorted by date or popularity ask for
    those ranks.
    """
    ids: set[int] = set()
    category_ids: set[int] = set()
    tag_ids: set[int] = set()
    open_rule = False

    for slot in configuration.slots:
        rule = slot.rule
        open_rule = open_rule or rule.is_open
        ids.update(rule.products)
        ids.update(rule.product_variations)
        category_ids.update(rule.categories)
        tag_ids.update(rule.tags)

    ranked_by = frozenset(
        slot.display.sort_by
        for slot in configuration.slots
        if slot.display.sort_by in RANKED_SORT_KEYS
    )
    if open_rule:
        return CatalogFilter(ranked_by=ranked_by)
    return CatalogFilter(
        ids=frozenset(ids),
        category_ids=frozenset(category_ids),
        tag_ids=frozenset(tag_ids),
        ranked_by=ranked_by,
    )


async def fetch_snapshot(
    catalog: CatalogLookup,
    item_filter: CatalogFilter,
    timeout: float | None = None,
) -> CatalogSnapshot:
    """Fetch one snapshot, failing fast as CatalogUnavailable.

    A timeout or lookup error is never turned into an empty snapshot.
    """
    try:
        items = await asyncio.wait_for(catalog.list_items(item_filter), timeout=timeout)
    except CatalogUnavailable:
        raise
    except asyncio.TimeoutError as exc:
        logger.warning("Catalog lookup timed out after %ss", timeout)
        raise CatalogUnavailable(f"Catalog lookup timed out after {timeout}s") from exc
    except Exception as exc:
        logger.warning("Catalog lookup failed: %s", exc)
        raise CatalogUnavailable(f"Catalog lookup failed: {exc}") from exc

    snapshot = CatalogSnapshot.from_items(items)
    logger.debug(
        "Catalog snapshot fetched",
        extra={"item_count": len(snapshot), "unrestricted": item_filter.is_unrestricted},
    )
    return snapshot


# ---------------------------------------------------------------------------
# In-memory lookup
# ---------------------------------------------------------------------------

class InMemoryCatalog:
    """Catalog lookup over a fixed item list (fixtures, previews, tests)."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items = {item.id: item for item in items}
        self.calls = 0

    async def list_items(self, item_filter: CatalogFilter) -> list[CatalogItem]:
        self.calls += 1
        matched = {
            item.id: item for item in self._items.values() if item_filter.matches(item)
        }
        for item in list(matched.values()):
            parent = self._items.get(item.parent_id) if item.is_variation else None
            if parent is not None:
                matched.setdefault(parent.id, parent)
        return list(matched.values())
