"""WooCommerce adapters: Store API catalog lookup and CoCart line items.

Catalog: ``GET /wp-json/wc/store/v1/products``. A union filter becomes up to
four paginated queries (product ids, variation ids, categories, tags) run
concurrently and merged by id; an unrestricted filter pages through the
whole catalog. Parents of returned variations are fetched too, since
variations carry no categories or tags of their own. When a slot sorts by date or popularity, one more
``orderby`` query per key ranks the fetched products. Any failed page fails
the whole lookup with CatalogUnavailable, so a partial catalog is never
returned.

Cart: ``POST /wp-json/cocart/v2/cart/add-item`` with the bundle product,
the quoted total as price override (converted exactly to major units), and
the chosen items in item_data.
"""

import asyncio
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any

from core.integrations.adapter_base import (
    AdapterBase,
    AdapterRequest,
    AuthCredentials,
    AuthType,
)
from patterns.domain_config import CartConfig, CatalogConfig
from verticals.bundles.cart import unit_override
from verticals.bundles.catalog import CatalogFilter, CatalogItem
from verticals.bundles.errors import CartUnavailable, CatalogUnavailable
from verticals.bundles.models.schemas import LineItemPart, SortBy

logger = logging.getLogger(__name__)

STORE_API = "/wp-json/wc/store/v1"
COCART_API = "/wp-json/cocart/v2"

# Store API orderby for each ranked sort key; rank 1 is the first item returned
RANK_ORDERBY = {
    SortBy.DATE: ("date", "newness"),
    SortBy.POPULARITY: ("popularity", "popularity"),
}


def _ids(values: frozenset[int]) -> str:
    return ",".join(str(v) for v in sorted(values))


def parse_product(payload: dict[str, Any]) -> CatalogItem:
    """Map a Store API product (or variation) to a CatalogItem."""
    prices = payload.get("prices") or {}
    parent = payload.get("parent") or None
    return CatalogItem(
        id=int(payload["id"]),
        price=int(prices.get("price") or 0),
        name=payload.get("name", ""),
        category_ids=tuple(int(c["id"]) for c in payload.get("categories") or []),
        tag_ids=tuple(int(t["id"]) for t in payload.get("tags") or []),
        is_variation=payload.get("type") == "variation",
        parent_id=int(parent) if parent else None,
    )


class WooCommerceCatalog(AdapterBase):
    """Catalog lookup against the WooCommerce Store API."""

    name = "woocommerce_catalog"

    def __init__(self, config: CatalogConfig, **kwargs):
        super().__init__(config.base_url, **kwargs)
        self.config = config

    async def _fetch_pages(self, params: dict[str, Any]) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        for page in range(1, self.config.max_pages + 1):
            resp = await self.request(
                AdapterRequest(
                    method="GET",
                    path=f"{STORE_API}/products",
                    params={**params, "page": page, "per_page": self.config.per_page},
                    timeout=self.config.timeout_seconds,
                )
            )
            if not resp.ok or not isinstance(resp.data, list):
                raise CatalogUnavailable(
                    f"Catalog page {page} failed: {resp.error or resp.status_code}",
                    upstream_status=resp.status_code,
                )
            items.extend(parse_product(p) for p in resp.data)
            if len(resp.data) < self.config.per_page:
                return items

        raise CatalogUnavailable(
            f"Catalog exceeds {self.config.max_pages} pages of {self.config.per_page}"
        )

    async def list_items(self, item_filter: CatalogFilter) -> list[CatalogItem]:
        if item_filter.is_unrestricted:
            queries = [{}, {"type": "variation"}]
        else:
            queries = []
            if item_filter.ids:
                ids = _ids(item_filter.ids)
                queries.append({"include": ids})
                queries.append({"include": ids, "type": "variation"})
            if item_filter.category_ids:
                queries.append({"category": _ids(item_filter.category_ids)})
            if item_filter.tag_ids:
                queries.append({"tag": _ids(item_filter.tag_ids)})

        results = await asyncio.gather(*(self._fetch_pages(q) for q in queries))

        merged: dict[int, CatalogItem] = {}
        for batch in results:
            for item in batch:
                merged[item.id] = item

        missing_parents = frozenset(
            item.parent_id
            for item in merged.values()
            if item.is_variation and item.parent_id is not None and item.parent_id not in merged
        )
        if missing_parents:
            for parent in await self._fetch_pages({"include": _ids(missing_parents)}):
                merged.setdefault(parent.id, parent)

        if merged and item_filter.ranked_by:
            merged = await self._apply_ranks(merged, item_filter)
        logger.info(
            "Fetched catalog items",
            extra={"queries": len(queries), "item_count": len(merged)},
        )
        return list(merged.values())

    async def _rank(self, sort_by: SortBy, product_ids: frozenset[int] | None) -> dict[int, int]:
        if product_ids is not None and not product_ids:
            return {}
        orderby, _ = RANK_ORDERBY[sort_by]
        params: dict[str, Any] = {"orderby": orderby, "order": "desc"}
        if product_ids is not None:
            params["include"] = _ids(product_ids)
        ordered = await self._fetch_pages(params)
        return {item.id: position for position, item in enumerate(ordered, start=1)}

    async def _apply_ranks(
        self, merged: dict[int, CatalogItem], item_filter: CatalogFilter
    ) -> dict[int, CatalogItem]:
        """Fill newness/popularity from the Store API's own ordering.

        The products endpoint exposes neither a creation date nor a sales
        count, so ranks are positions in an ``orderby`` listing of the
        fetched products. Variations are not listed there and take their
        parent's rank.
        """
        product_ids = frozenset(
            item.parent_id if item.is_variation else item.id
            for item in merged.values()
            if not item.is_variation or item.parent_id is not None
        )
        scope = None if item_filter.is_unrestricted else product_ids
        keys = [key for key in RANK_ORDERBY if key in item_filter.ranked_by]
        rankings = await asyncio.gather(*(self._rank(key, scope) for key in keys))

        ranked: dict[int, CatalogItem] = {}
        for item_id, item in merged.items():
            product_id = item.parent_id if item.is_variation else item.id
            ranks = {
                RANK_ORDERBY[key][1]: ranking.get(product_id)
                for key, ranking in zip(keys, rankings)
            }
            ranked[item_id] = replace(item, **ranks)
        return ranked


class CoCartLineItemAdder(AdapterBase):
    """Adds a composed bundle line through CoCart."""

    name = "cocart"

    def __init__(self, config: CartConfig, currency_minor_unit: int = 2, **kwargs):
        credentials = (
            AuthCredentials(auth_type=AuthType.API_KEY, api_key=config.api_key)
            if config.api_key
            else None
        )
        super().__init__(config.base_url, credentials=credentials, **kwargs)
        self.config = config
        self.currency_minor_unit = currency_minor_unit

    async def add_composed_line_item(
        self,
        product_id: int | None,
        items: list[LineItemPart],
        total_override: int,
        metadata: dict[str, Any],
    ) -> str:
        body = {
            "id": str(product_id) if product_id is not None else "",
            "quantity": "1",
            "price": format(Decimal(total_override).scaleb(-self.currency_minor_unit), "f"),
            "item_data": {
                **metadata,
                "bundle_items": [
                    {
                        "slot_id": part.slot_id,
                        "item_id": part.item_id,
                        "qty": part.quantity,
                        "unit_price_override": unit_override(part.unit_price_override),
                    }
                    for part in items
                ],
                "bundle_total": total_override,
            },
        }
        resp = await self.request(
            AdapterRequest(
                method="POST",
                path=f"{COCART_API}/cart/add-item",
                body=body,
                timeout=self.config.timeout_seconds,
            )
        )
        if not resp.ok or not isinstance(resp.data, dict):
            raise CartUnavailable(f"Add to cart failed: {resp.error or resp.status_code}")

        line_id = resp.data.get("item_key")
        if not line_id:
            cart_items = resp.data.get("items") or []
            line_id = cart_items[-1].get("item_key") if cart_items else None
        if not line_id:
            raise CartUnavailable("Cart response did not include an item key")
        return str(line_id)
