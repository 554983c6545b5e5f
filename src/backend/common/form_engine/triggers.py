from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .conditions import evaluate, parse
from .models import FormTemplate, NotificationDefinition, TriggerRule
from .registry import TriggerRuleSetRegistry, registry as default_registry


@dataclass(frozen=True)
class TriggerReport:
    active: frozenset[str]
    matched_rule_ids: tuple[str, ...]


class TriggerAggregator:
    """Evaluates a flat rule table; the result is the union of matching codes."""

    def __init__(self, rules: Iterable[TriggerRule]):
        self._rules = list(rules)
        # Parse once; predicates were validated when the template was loaded.
        self._conditions = [None if rule.always_active else parse(rule.predicate or "") for rule in self._rules]

    @property
    def rules(self) -> List[TriggerRule]:
        return list(self._rules)

    def run(self, answers: Mapping[str, Any]) -> TriggerReport:
        active: set[str] = set()
        matched: list[str] = []
        for rule, condition in zip(self._rules, self._conditions):
            if condition is None or evaluate(condition, answers):
                active.add(rule.code)
                matched.append(rule.rule_id or rule.code)
        return TriggerReport(active=frozenset(active), matched_rule_ids=tuple(matched))


def compute_triggers(rules: Iterable[TriggerRule], answers: Mapping[str, Any]) -> frozenset[str]:
    return TriggerAggregator(rules).run(answers).active


def rules_for_template(
    template: FormTemplate,
    *,
    rule_sets: Optional[TriggerRuleSetRegistry] = None,
) -> List[TriggerRule]:
    if not template.has_trigger_evaluation:
        return []
    rules = list(template.trigger_rules)
    if template.trigger_rule_set:
        rules.extend((rule_sets or default_registry).create(template.trigger_rule_set).rules)
    return rules


def notifications_for_template(
    template: FormTemplate,
    *,
    rule_sets: Optional[TriggerRuleSetRegistry] = None,
) -> List[NotificationDefinition]:
    if not template.has_trigger_evaluation or not template.trigger_rule_set:
        return []
    return list((rule_sets or default_registry).create(template.trigger_rule_set).notifications)


def describe_triggers(
    codes: Iterable[str],
    notifications: Sequence[NotificationDefinition] = (),
) -> List[NotificationDefinition]:
    """Notification details for the active codes, in declaration order.

    Codes without a declared notification come last, alphabetically.
    """
    remaining = set(codes)
    described: List[NotificationDefinition] = []
    for item in notifications:
        if item.code in remaining:
            described.append(item)
            remaining.discard(item.code)
    described.extend(NotificationDefinition(code=code, label=code) for code in sorted(remaining))
    return described


__all__ = [
    "TriggerAggregator",
    "TriggerReport",
    "compute_triggers",
    "describe_triggers",
    "notifications_for_template",
    "rules_for_template",
]
