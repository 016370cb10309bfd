"""Domain models for rules, plus the generic rule engine.

Rules are declarative records (conditions over named fact counters, severity,
effort range, extraction target). A single evaluator applies every record, so
adding a rule means adding a record, not a new branch.
"""

import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass

__all__ = [
    "RULES",
    "Condition",
    "RuleDefinition",
    "RuleEngine",
]

from reducer_health.domain.entities import EffortRange, FeatureFact, Severity, Violation
from reducer_health.domain.errors import ConfigurationError

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Condition:
    """`counter <op> threshold`, where threshold is a named config value or a literal."""

    counter: str
    op: str
    threshold_key: str | None = None
    value: float = 0

    def threshold(self, thresholds: Mapping[str, float]) -> float:
        if self.threshold_key is None:
            return self.value
        return thresholds[self.threshold_key]

    def describe(self, thresholds: Mapping[str, float]) -> str:
        return f"{self.counter} {self.op} {self.threshold(thresholds):g}"

    def holds(self, counters: Mapping[str, int], thresholds: Mapping[str, float]) -> bool:
        return _OPERATORS[self.op](counters[self.counter], self.threshold(thresholds))


@dataclass(frozen=True)
class RuleDefinition:
    """
    One rule as data.

    Fires when ANY of `conditions` holds. Severity is raised to CRITICAL when
    `escalation` is non-empty and ALL of its conditions hold. When
    `effort_per` names a counter, the effort range is multiplied by it.
    """

    rule_id: str
    title: str
    conditions: tuple[Condition, ...]
    severity: Severity
    effort: EffortRange
    target: str
    message: str
    escalation: tuple[Condition, ...] = ()
    escalation_note: str = ""
    effort_per: str | None = None

    def threshold_keys(self) -> set[str]:
        """Config keys this rule reads."""
        return {
            c.threshold_key
            for c in self.conditions + self.escalation
            if c.threshold_key is not None
        }

    def fires(self, counters: Mapping[str, int], thresholds: Mapping[str, float]) -> bool:
        return any(c.holds(counters, thresholds) for c in self.conditions)

    def severity_for(
        self, counters: Mapping[str, int], thresholds: Mapping[str, float]
    ) -> Severity:
        if self.escalation and all(c.holds(counters, thresholds) for c in self.escalation):
            return Severity.CRITICAL
        return self.severity

    def describe(self, thresholds: Mapping[str, float]) -> str:
        """Trigger as text with effective thresholds, e.g. 'closure_count > 0'."""
        return " or ".join(c.describe(thresholds) for c in self.conditions)

    def effort_for(self, counters: Mapping[str, int]) -> EffortRange:
        if self.effort_per is None:
            return self.effort
        return self.effort.scaled(max(1, counters[self.effort_per]))


RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        rule_id="1.1",
        title="Monolithic feature",
        conditions=(
            Condition("state_property_count", ">", "max_state_properties"),
            Condition("action_count", ">", "max_actions"),
        ),
        severity=Severity.HIGH,
        effort=EffortRange(4, 8),
        target="split-feature",
        message=(
            "{unit} has {state_property_count} state properties (max {max_state_properties}) "
            "and {action_count} actions (max {max_actions}). Split it into child features."
        ),
    ),
    RuleDefinition(
        rule_id="1.2",
        title="Untestable closure",
        conditions=(Condition("closure_count", ">", "max_closure_properties"),),
        severity=Severity.HIGH,
        effort=EffortRange(2, 2),
        target="inject-dependencies",
        message=(
            "{unit} stores {closure_count} closure-typed effect properties ({closure_names}). "
            "Move them behind @Dependency clients."
        ),
        escalation=(
            Condition("invoked_closure_count", ">=", value=1),
            Condition("dependency_count", "==", value=0),
        ),
        escalation_note=" They run on effect paths and the feature injects nothing tests could override.",
        effort_per="closure_count",
    ),
    RuleDefinition(
        rule_id="1.3",
        title="Duplicated handlers",
        conditions=(Condition("duplicate_handler_count", ">=", "min_duplicate_handlers"),),
        severity=Severity.MEDIUM,
        effort=EffortRange(1, 1),
        target="extract-shared-handler",
        message=(
            "{unit} has {duplicate_handler_count} action handlers duplicating another handler. "
            "Extract the shared logic into one helper."
        ),
    ),
    RuleDefinition(
        rule_id="1.4",
        title="Unclear organization",
        conditions=(Condition("vague_method_count", ">=", "min_vague_methods"),),
        severity=Severity.MEDIUM,
        effort=EffortRange(4, 8),
        target="split-feature",
        message=(
            "{unit} has {vague_method_count} vaguely named methods ({vague_names}). "
            "Name methods after what they do, or split responsibilities out."
        ),
    ),
    RuleDefinition(
        rule_id="1.5",
        title="Tight coupling",
        conditions=(Condition("child_count", ">=", "min_child_references"),),
        severity=Severity.MEDIUM,
        effort=EffortRange(6, 12),
        target="extract-coordinator",
        message=(
            "{unit} composes {child_count} child features ({child_names}). "
            "Introduce an intermediate coordinator feature."
        ),
    ),
)


class RuleEngine:
    """Applies every RuleDefinition to a FeatureFact. Pure and order-independent."""

    def __init__(
        self,
        thresholds: Mapping[str, float],
        rules: tuple[RuleDefinition, ...] = RULES,
    ) -> None:
        self._rules = rules
        self._thresholds = dict(thresholds)
        self._validate_thresholds()

    def _validate_thresholds(self) -> None:
        """Fail fast rather than silently disabling a rule."""
        for rule in self._rules:
            for key in sorted(rule.threshold_keys()):
                if key not in self._thresholds:
                    raise ConfigurationError(key, f"missing threshold for rule {rule.rule_id}")
                value = self._thresholds[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigurationError(key, f"expected a number, got {value!r}")
                if value < 0:
                    raise ConfigurationError(key, f"must not be negative, got {value!r}")

    @property
    def rules(self) -> tuple[RuleDefinition, ...]:
        return self._rules

    @property
    def thresholds(self) -> dict[str, float]:
        return dict(self._thresholds)

    def evaluate(self, fact: FeatureFact) -> list[Violation]:
        """Zero or one Violation per rule, sorted by rule id."""
        counters = fact.counters()
        violations = [
            self._violation(rule, fact, counters)
            for rule in self._rules
            if rule.fires(counters, self._thresholds)
        ]
        return sorted(violations, key=lambda v: v.rule_id)

    def _violation(
        self, rule: RuleDefinition, fact: FeatureFact, counters: Mapping[str, int]
    ) -> Violation:
        severity = rule.severity_for(counters, self._thresholds)
        message = rule.message.format(**self._message_context(fact, counters))
        if severity is Severity.CRITICAL and rule.severity is not Severity.CRITICAL:
            message += rule.escalation_note
        return Violation(
            rule_id=rule.rule_id,
            title=rule.title,
            severity=severity,
            message=message,
            unit=fact.identifier,
            effort=rule.effort_for(counters),
            target=rule.target,
        )

    def _message_context(
        self, fact: FeatureFact, counters: Mapping[str, int]
    ) -> dict[str, object]:
        context: dict[str, object] = {
            key: int(value) if float(value).is_integer() else value
            for key, value in self._thresholds.items()
        }
        context.update(counters)
        context["unit"] = fact.identifier
        context["closure_names"] = ", ".join(fact.closure_properties)
        context["vague_names"] = ", ".join(fact.vague_methods)
        context["child_names"] = ", ".join(fact.children)
        return context
