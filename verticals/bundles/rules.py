"""Bundle configuration integrity rules (pure functions).

A configuration that fails any of these must not go live: the store
refuses to save it enabled and the storefront refuses to price it.
"""

from patterns.rules_engine import RuleResult, RuleSetResult, evaluate_rules
from verticals.bundles.errors import ConfigurationInvalid
from verticals.bundles.models.schemas import (
    BundleConfigurationWrite,
    IncludedItemsPricing,
)


def check_has_slots(configuration: BundleConfigurationWrite) -> RuleResult:
    if configuration.is_enabled and not configuration.slots:
        return RuleResult.fail(
            "has_slots", "no_slots", "An enabled bundle needs at least one slot"
        )
    return RuleResult.ok("has_slots")


def check_unique_slot_ids(configuration: BundleConfigurationWrite) -> RuleResult:
    ids = [slot.id for slot in configuration.slots]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        return RuleResult.fail(
            "unique_slot_ids",
            "duplicate_slot_id",
            f"Duplicate slot ids: {', '.join(duplicates)}",
            duplicates=duplicates,
        )
    return RuleResult.ok("unique_slot_ids")


def check_quantity_ranges(configuration: BundleConfigurationWrite) -> list[RuleResult]:
    return [
        RuleResult.fail(
            "quantity_range",
            "min_above_max",
            f"Slot {slot.id!r}: minimum {slot.display.quantity_min} "
            f"exceeds maximum {slot.display.quantity_max}",
            slot_id=slot.id,
        )
        for slot in configuration.slots
        if slot.display.quantity_min > slot.display.quantity_max
    ]


def check_included_items_count(configuration: BundleConfigurationWrite) -> RuleResult:
    pricing = configuration.pricing
    if isinstance(pricing, IncludedItemsPricing) and pricing.included_items_count < 0:
        return RuleResult.fail(
            "included_items_count",
            "negative_included_items",
            f"Included items count is negative ({pricing.included_items_count})",
        )
    return RuleResult.ok("included_items_count")


def evaluate_configuration(configuration: BundleConfigurationWrite) -> RuleSetResult:
    return evaluate_rules(
        check_has_slots(configuration),
        check_unique_slot_ids(configuration),
        *check_quantity_ranges(configuration),
        check_included_items_count(configuration),
    )


def check_configuration(
    configuration: BundleConfigurationWrite, configuration_id: str | None = None
) -> None:
    """Raise ConfigurationInvalid listing every integrity problem found."""
    outcome = evaluate_configuration(configuration)
    if outcome.all_passed:
        return
    problems = [r.message for r in outcome.failed]
    configuration_id = configuration_id or getattr(configuration, "id", None)
    raise ConfigurationInvalid(
        f"Bundle configuration {configuration_id or '(new)'} is invalid",
        problems=problems,
        configuration_id=configuration_id,
    )

