"""Pure-function rules engine pattern.

Rules are stateless functions: (subject, context) -> RuleResult.
No database, no side effects, no I/O. A failed result carries a
machine-readable ``reason`` code so callers can map it to targeted UI
feedback instead of parsing messages.
"""

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RuleResult:
    """Outcome of a single rule evaluation."""

    passed: bool
    rule_name: str
    message: str
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, rule_name: str, message: str = "ok", **details: Any) -> "RuleResult":
        return cls(passed=True, rule_name=rule_name, message=message, details=details)

    @classmethod
    def fail(
        cls, rule_name: str, reason: str, message: str, **details: Any
    ) -> "RuleResult":
        return cls(
            passed=False,
            rule_name=rule_name,
            message=message,
            reason=reason,
            details=details,
        )


@dataclass
class RuleSetResult:
    """Aggregate outcome of multiple rules."""

    results: list[RuleResult]
    all_passed: bool = field(init=False)
    failed: list[RuleResult] = field(init=False)

    def __post_init__(self):
        self.failed = [r for r in self.results if not r.passed]
        self.all_passed = len(self.failed) == 0


# ---------------------------------------------------------------------------
# Rule composition
# ---------------------------------------------------------------------------

def evaluate_rules(*rules: RuleResult) -> RuleSetResult:
    """Compose multiple rule results into a single aggregate.

    Example::

        result = evaluate_rules(
            check_quantity_bounds(slot, lines),
            *check_items_eligible(lines, eligible_ids),
        )
        if not result.all_passed:
            report(result.failed)
    """
    return RuleSetResult(results=list(rules))
