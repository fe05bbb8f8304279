"""Rule Resolver: eligibility rule + catalog snapshot -> ordered eligible items.

Pure functions only. The include/exclude rule is flat data evaluated by
predicates; nothing here performs I/O or keeps state between calls.

Products and variations are resolved in two independent passes:
- products: explicit ids ∪ included categories ∪ included tags, or every
  product when the rule has no inclusion axis at all (open rule)
- variations: explicit variation ids only
Exclusions are subtracted from both passes and always win over inclusion.
"""

import sys
from typing import Callable, Iterable

from verticals.bundles.catalog import CatalogItem, CatalogSnapshot
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    EligibilityRule,
    EligibleItem,
    ResolvedSlot,
    SelectedItem,
    Slot,
    SlotStatus,
    SortBy,
    SortOrder,
)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _overlaps(values: Iterable[int], wanted: list[int]) -> bool:
    return bool(wanted) and not set(wanted).isdisjoint(values)


def is_excluded(
    rule: EligibilityRule, item: CatalogItem, parent: CatalogItem | None = None
) -> bool:
    """True if any exclude axis matches the item.

    Variations usually carry no categories or tags of their own, so the
    category and tag excludes also look at the parent product when given.
    """
    for subject in (item, parent):
        if subject is None:
            continue
        if _overlaps(subject.category_ids, rule.exclude_categories):
            return True
        if _overlaps(subject.tag_ids, rule.exclude_tags):
            return True
    if item.is_variation:
        return (
            item.id in rule.exclude_product_variations
            or item.parent_id in rule.exclude_products
        )
    return item.id in rule.exclude_products


def is_candidate(rule: EligibilityRule, item: CatalogItem) -> bool:
    """True if an include axis (or the open-rule default) admits the item."""
    if item.is_variation:
        return item.id in rule.product_variations
    if rule.is_open:
        return True
    return (
        item.id in rule.products
        or _overlaps(item.category_ids, rule.categories)
        or _overlaps(item.tag_ids, rule.tags)
    )


def is_eligible(
    rule: EligibilityRule, item: CatalogItem, parent: CatalogItem | None = None
) -> bool:
    return is_candidate(rule, item) and not is_excluded(rule, item, parent)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def _date_key(item: CatalogItem) -> float:
    # newer items rank lower, unranked items count as oldest
    return -item.newness if item.newness is not None else float("-inf")


def _popularity_key(item: CatalogItem) -> int:
    return item.popularity if item.popularity is not None else sys.maxsize


_SORT_KEYS: dict[SortBy, Callable[[CatalogItem], object]] = {
    SortBy.PRICE: lambda item: item.price,
    SortBy.NAME: lambda item: item.name.casefold(),
    SortBy.DATE: _date_key,
    SortBy.POPULARITY: _popularity_key,
}


def order_items(
    items: Iterable[CatalogItem],
    sort_by: SortBy = SortBy.PRICE,
    sort_order: SortOrder = SortOrder.ASC,
) -> list[CatalogItem]:
    """Sort by the slot's key; equal keys stay in ascending id order."""
    by_id = sorted(items, key=lambda item: item.id)
    return sorted(
        by_id,
        key=_SORT_KEYS[sort_by],
        reverse=sort_order == SortOrder.DESC,
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _parent_of(item: CatalogItem, snapshot: CatalogSnapshot) -> CatalogItem | None:
    return snapshot.get(item.parent_id) if item.parent_id is not None else None


def to_eligible(item: CatalogItem) -> EligibleItem:
    return EligibleItem(
        id=item.id,
        name=item.name,
        price=item.price,
        category_ids=item.category_ids,
        tag_ids=item.tag_ids,
        is_variation=item.is_variation,
        parent_id=item.parent_id,
    )


def resolve(
    rule: EligibilityRule,
    snapshot: CatalogSnapshot,
    sort_by: SortBy = SortBy.PRICE,
    sort_order: SortOrder = SortOrder.ASC,
) -> list[EligibleItem]:
    """Evaluate one rule against a snapshot, returning items in display order."""
    products = [i for i in snapshot if not i.is_variation and is_eligible(rule, i)]
    variations = [
        i for i in snapshot
        if i.is_variation and is_eligible(rule, i, _parent_of(i, snapshot))
    ]
    return [to_eligible(i) for i in order_items(products + variations, sort_by, sort_order)]


def default_selection(slot: Slot, items: list[EligibleItem]) -> SelectedItem | None:
    """The slot's pre-selection, or None when its default item is no longer
    eligible. The quantity is clamped into the slot's bounds."""
    display = slot.display
    if display.default_item_id is None:
        return None
    if all(item.id != display.default_item_id for item in items):
        return None
    quantity = min(max(display.default_quantity, display.quantity_min), display.quantity_max)
    if quantity < 1:
        return None
    return SelectedItem(item_id=display.default_item_id, quantity=quantity)


def resolve_slot(slot: Slot, snapshot: CatalogSnapshot) -> ResolvedSlot:
    items = resolve(
        slot.rule,
        snapshot,
        sort_by=slot.display.sort_by,
        sort_order=slot.display.sort_order,
    )
    status = SlotStatus.OK if items else SlotStatus.RULE_RESOLUTION_EMPTY
    return ResolvedSlot(
        slot=slot, status=status, items=items, default=default_selection(slot, items)
    )


def resolve_configuration(
    configuration: BundleConfiguration, snapshot: CatalogSnapshot
) -> list[ResolvedSlot]:
    """Resolve every slot of a configuration against the same snapshot."""
    return [resolve_slot(slot, snapshot) for slot in configuration.slots]


def eligible_ids_by_slot(resolved: list[ResolvedSlot]) -> dict[str, set[int]]:
    return {r.slot.id: {item.id for item in r.items} for r in resolved}
