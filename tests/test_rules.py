"""Test configuration integrity rules and the rules engine they run on."""
import pytest

from patterns.rules_engine import RuleResult, evaluate_rules
from verticals.bundles.errors import ConfigurationInvalid
from verticals.bundles.models.schemas import IncludedItemsPricing
from verticals.bundles.rules import check_configuration, evaluate_configuration


def test_evaluate_rules_collects_failures():
    outcome = evaluate_rules(
        RuleResult.ok("a"),
        RuleResult.fail("b", "bad", "b failed"),
    )
    assert not outcome.all_passed
    assert [r.rule_name for r in outcome.failed] == ["b"]


def test_valid_configuration_passes(make_configuration):
    assert evaluate_configuration(make_configuration()).all_passed
    check_configuration(make_configuration())


def test_enabled_configuration_needs_slots(make_configuration):
    with pytest.raises(ConfigurationInvalid) as exc_info:
        check_configuration(make_configuration(slots=[]))
    assert exc_info.value.problems == ["An enabled bundle needs at least one slot"]


def test_disabled_draft_may_have_no_slots(make_configuration):
    check_configuration(make_configuration(slots=[], is_enabled=False))


def test_duplicate_slot_ids(make_slot, make_configuration):
    configuration = make_configuration(slots=[make_slot("a"), make_slot("a")])
    outcome = evaluate_configuration(configuration)
    assert [r.reason for r in outcome.failed] == ["duplicate_slot_id"]


def test_min_above_max(make_slot, make_configuration):
    configuration = make_configuration(slots=[make_slot(quantity_min=4, quantity_max=2)])
    outcome = evaluate_configuration(configuration)
    assert [r.reason for r in outcome.failed] == ["min_above_max"]


def test_negative_included_items_count(make_configuration):
    configuration = make_configuration(
        pricing=IncludedItemsPricing(box_price=5000, included_items_count=-1)
    )
    with pytest.raises(ConfigurationInvalid) as exc_info:
        check_configuration(configuration)
    assert exc_info.value.to_dict()["code"] == "configuration_invalid"
    assert exc_info.value.details["configuration_id"] == configuration.id


def test_all_problems_reported_together(make_slot, make_configuration):
    configuration = make_configuration(
        slots=[make_slot("a", quantity_min=3, quantity_max=1), make_slot("a")],
        pricing=IncludedItemsPricing(included_items_count=-2),
    )
    with pytest.raises(ConfigurationInvalid) as exc_info:
        check_configuration(configuration)
    assert len(exc_info.value.problems) == 3
