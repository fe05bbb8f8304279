"""Slot Selection Validator.

Each check is a pure rule returning RuleResult; ``validate`` composes them
and converts failures into Violations carrying a machine-readable reason.
Selections are reported, never corrected.
"""

from typing import Iterable, Mapping

from patterns.rules_engine import RuleResult, evaluate_rules
from verticals.bundles.models.schemas import (
    BundleConfiguration,
    SelectedItem,
    Selection,
    Slot,
    Violation,
    ViolationReason,
)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def check_quantity_bounds(slot: Slot, lines: list[SelectedItem]) -> RuleResult:
    """Total quantity must sit in [min, max]; an optional slot may be empty."""
    display = slot.display
    total = sum(line.quantity for line in lines if line.quantity > 0)

    if total == 0 and display.is_optional:
        return RuleResult.ok("quantity_bounds", "optional slot left empty", total=total)
    if total < display.quantity_min:
        return RuleResult.fail(
            "quantity_bounds",
            ViolationReason.BELOW_MINIMUM.value,
            f"Choose at least {display.quantity_min} item(s); {total} chosen",
            total=total,
        )
    if total > display.quantity_max:
        return RuleResult.fail(
            "quantity_bounds",
            ViolationReason.ABOVE_MAXIMUM.value,
            f"Choose at most {display.quantity_max} item(s); {total} chosen",
            total=total,
        )
    return RuleResult.ok("quantity_bounds", total=total)


def check_line_quantities(lines: list[SelectedItem]) -> list[RuleResult]:
    return [
        RuleResult.fail(
            "line_quantity",
            ViolationReason.INVALID_QUANTITY.value,
            f"Quantity for item {line.item_id} must be at least 1",
            item_id=line.item_id,
        )
        for line in lines
        if line.quantity < 1
    ]


def check_items_eligible(
    lines: list[SelectedItem], eligible_ids: Iterable[int]
) -> list[RuleResult]:
    eligible = set(eligible_ids)
    return [
        RuleResult.fail(
            "item_eligibility",
            ViolationReason.ITEM_NOT_ELIGIBLE.value,
            f"Item {line.item_id} is not available for this choice",
            item_id=line.item_id,
        )
        for line in lines
        if line.item_id not in eligible
    ]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def validate(
    slot: Slot, lines: list[SelectedItem], eligible_ids: Iterable[int]
) -> list[Violation]:
    """Validate one slot's lines. An empty list means the selection is ok."""
    outcome = evaluate_rules(
        check_quantity_bounds(slot, lines),
        *check_line_quantities(lines),
        *check_items_eligible(lines, eligible_ids),
    )
    return [
        Violation(
            slot_id=slot.id,
            reason=ViolationReason(result.reason),
            message=result.message,
            item_id=result.details.get("item_id"),
        )
        for result in outcome.failed
    ]


def validate_selection(
    configuration: BundleConfiguration,
    selection: Selection,
    eligible_by_slot: Mapping[str, Iterable[int]],
) -> list[Violation]:
    """Validate every slot of a configuration, including the untouched ones."""
    violations: list[Violation] = []

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
        violations.extend(
            validate(slot, selection.get(slot.id, []), eligible_by_slot.get(slot.id, ()))
        )
    return violations
