"""Cart Line-Item Adder surface.

Checkout plumbing lives in the commerce backend; the bundle engine only
hands it one composed line item: the chosen items (recorded as line-item
metadata for order history) and the total the customer was quoted.
"""

from decimal import Decimal
from typing import Any, Protocol

from verticals.bundles.models.schemas import LineItemPart


class CartLineItemAdder(Protocol):
    async def add_composed_line_item(
        self,
        product_id: int | None,
        items: list[LineItemPart],
        total_override: int,
        metadata: dict[str, Any],
    ) -> str:
        """Add the bundle as a single line and return its line id."""
        ...


class InMemoryCart:
    """Records composed line items instead of calling a backend."""

    def __init__(self):
        self.lines: dict[str, dict[str, Any]] = {}

    async def add_composed_line_item(
        self,
        product_id: int | None,
        items: list[LineItemPart],
        total_override: int,
        metadata: dict[str, Any],
    ) -> str:
        line_id = f"line-{len(self.lines) + 1}"
        self.lines[line_id] = {
            "product_id": product_id,
            "items": list(items),
            "total_override": total_override,
            "metadata": metadata,
        }
        return line_id


def unit_override(discounted_price: Decimal | None) -> str | None:
    """Wire form of a unit price override (minor units, full precision)."""
    return None if discounted_price is None else format(discounted_price, "f")
