"""Semantic validation of templates and the lookup tables sessions run on."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .answers import answer_key
from .conditions import Condition, evaluate, parse, referenced_fields
from .config import EngineConfig, UnparsableConditionPolicy
from .errors import MalformedTemplate, UnparsableCondition
from .models import (
    Duration,
    FieldDefinition,
    FieldType,
    FormTemplate,
    InstanceCount,
    NotificationDefinition,
    SectionDefinition,
    SumOf,
    TriggerRule,
)
from .options import NAMED_OPTIONS
from .registry import TriggerRuleSetRegistry, registry as default_registry
from .triggers import notifications_for_template, rules_for_template

logger = logging.getLogger(__name__)

FieldRef = Tuple[str, str]


class ScopedAnswers(Mapping):
    """Answers as seen from one repeatable instance.

    Names of the section's own fields resolve to the instance's composite keys;
    every other name resolves to the top-level key.
    """

    def __init__(self, answers: Mapping[str, Any], section: SectionDefinition, index: int):
        self._answers = answers
        self._section_id = section.id
        self._index = index
        self._local = {f.id for f in section.fields}

    def _key(self, name: str) -> str:
        if name in self._local:
            return answer_key(self._section_id, self._index, name)
        return name

    def __getitem__(self, name: str) -> Any:
        return self._answers[self._key(name)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._answers)

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._answers


@dataclass(frozen=True)
class CompiledTemplate:
    template: FormTemplate
    sections: Dict[str, SectionDefinition]
    top_level_fields: Dict[str, FieldDefinition]
    conditions: Dict[FieldRef, Condition] = field(default_factory=dict)
    # Fields whose show_if could not be parsed and which therefore always show.
    fail_open: Dict[FieldRef, str] = field(default_factory=dict)
    risk_bindings: Dict[FieldRef, Tuple[str, str]] = field(default_factory=dict)
    rules: Tuple[TriggerRule, ...] = ()
    notifications: Tuple[NotificationDefinition, ...] = ()

    def scoped(self, answers: Mapping[str, Any], section: SectionDefinition, index: Optional[int]) -> Mapping[str, Any]:
        if index is None:
            return answers
        return ScopedAnswers(answers, section, index)

    def is_visible(
        self,
        section: SectionDefinition,
        field_def: FieldDefinition,
        answers: Mapping[str, Any],
        index: Optional[int] = None,
    ) -> bool:
        ref = (section.id, field_def.id)
        condition = self.conditions.get(ref)
        if condition is None:
            if ref in self.fail_open:
                logger.warning(
                    "Could not parse show_if %r for %s.%s; showing the field",
                    self.fail_open[ref],
                    section.id,
                    field_def.id,
                )
            return True
        return evaluate(condition, self.scoped(answers, section, index))


def compile_template(
    template: FormTemplate,
    config: Optional[EngineConfig] = None,
    *,
    rule_sets: Optional[TriggerRuleSetRegistry] = None,
) -> CompiledTemplate:
    """Validate ``template`` and build its lookup tables.

    Every problem found is reported at once in a single MalformedTemplate.
    """
    config = config or EngineConfig()
    rule_sets = rule_sets or default_registry
    problems: List[str] = []

    sections: Dict[str, SectionDefinition] = {}
    top_level: Dict[str, FieldDefinition] = {}
    owners: Dict[str, str] = {}
    for section in template.sections:
        if section.id in sections:
            problems.append(f"duplicate section id '{section.id}'")
            continue
        sections[section.id] = section
        seen: set[str] = set()
        for f in section.fields:
            if f.id in seen:
                problems.append(f"duplicate field id '{f.id}' in section '{section.id}'")
                continue
            seen.add(f.id)
            if section.repeatable:
                continue
            # Top-level answers are keyed by bare field id.
            if f.id in owners:
                problems.append(f"field id '{f.id}' in section '{section.id}' collides with section '{owners[f.id]}'")
                continue
            owners[f.id] = section.id
            top_level[f.id] = f

    # A top-level id must not shadow a composite key of any repeatable instance.
    for section in sections.values():
        if not section.repeatable:
            continue
        for f in section.fields:
            pattern = re.compile(rf"^{re.escape(section.id)}_\d+_{re.escape(f.id)}$")
            for top_id, owner in owners.items():
                if pattern.match(top_id):
                    problems.append(
                        f"field id '{top_id}' in section '{owner}' collides with "
                        f"instance keys of repeatable section '{section.id}'"
                    )

    def in_scope(name: str, section: SectionDefinition) -> bool:
        if section.repeatable and any(f.id == name for f in section.fields):
            return True
        return name in top_level

    conditions: Dict[FieldRef, Condition] = {}
    fail_open: Dict[FieldRef, str] = {}
    risk_bindings: Dict[FieldRef, Tuple[str, str]] = {}

    for section in sections.values():
        for f in section.fields:
            ref = (section.id, f.id)
            where = f"{section.id}.{f.id}"

            if f.show_if is not None:
                try:
                    condition = parse(f.show_if)
                except UnparsableCondition as exc:
                    if "&&" in f.show_if and "||" in f.show_if:
                        problems.append(f"{where}: show_if mixes && and || ({f.show_if!r})")
                    elif config.unparsable_condition_policy == UnparsableConditionPolicy.FAIL_OPEN:
                        logger.warning("Template %s: %s; field will always show", template.id, exc)
                        fail_open[ref] = f.show_if
                    else:
                        problems.append(f"{where}: {exc}")
                else:
                    conditions[ref] = condition
                    for name in sorted(referenced_fields(condition)):
                        if not in_scope(name, section):
                            problems.append(f"{where}: show_if references unknown field '{name}'")

            if isinstance(f.options, str) and f.options not in NAMED_OPTIONS:
                problems.append(f"{where}: unknown option enumeration '{f.options}'")

            if f.type == FieldType.RISK_MATRIX:
                binding = _risk_binding(f, section, in_scope)
                for name in binding:
                    if not in_scope(name, section):
                        problems.append(f"{where}: risk matrix bound to unknown field '{name}'")
                risk_bindings[ref] = binding

            if f.calculation is not None:
                problems.extend(_calculation_problems(where, f, section, sections, in_scope))

    rules: List[TriggerRule] = []
    notifications: List[NotificationDefinition] = []
    if template.has_trigger_evaluation:
        if template.trigger_rule_set and template.trigger_rule_set not in rule_sets:
            problems.append(f"unknown trigger rule set '{template.trigger_rule_set}'")
        else:
            rules = rules_for_template(template, rule_sets=rule_sets)
            notifications = notifications_for_template(template, rule_sets=rule_sets)
        for rule in rules:
            if rule.always_active:
                continue
            label = rule.rule_id or rule.code
            try:
                condition = parse(rule.predicate or "")
            except UnparsableCondition as exc:
                problems.append(f"trigger rule {label}: {exc}")
                continue
            for name in sorted(referenced_fields(condition)):
                if name not in top_level:
                    problems.append(f"trigger rule {label} references unknown field '{name}'")

    if problems:
        raise MalformedTemplate(template.id, problems)

    return CompiledTemplate(
        template=template,
        sections=sections,
        top_level_fields=top_level,
        conditions=conditions,
        fail_open=fail_open,
        risk_bindings=risk_bindings,
        rules=tuple(rules),
        notifications=tuple(notifications),
    )


def _risk_binding(f: FieldDefinition, section: SectionDefinition, in_scope) -> Tuple[str, str]:
    severity, probability = "severity", "probability"
    if f.id.endswith("_risk"):
        stem = f.id[: -len("_risk")]
        if in_scope(f"{stem}_severity", section):
            severity = f"{stem}_severity"
        if in_scope(f"{stem}_probability", section):
            probability = f"{stem}_probability"
    return (f.severity_field or severity, f.probability_field or probability)


def _calculation_problems(where, f, section, sections, in_scope) -> List[str]:
    calc = f.calculation
    problems: List[str] = []
    if isinstance(calc, (InstanceCount, SumOf)):
        target = sections.get(calc.section)
        if target is None or not target.repeatable:
            problems.append(f"{where}: calculation needs repeatable section '{calc.section}'")
        elif isinstance(calc, SumOf) and not any(g.id == calc.field for g in target.fields):
            problems.append(f"{where}: calculation sums unknown field '{calc.section}.{calc.field}'")
    elif isinstance(calc, Duration):
        for name in (calc.start, calc.end):
            if not in_scope(name, section):
                problems.append(f"{where}: duration references unknown field '{name}'")
    return problems


__all__ = ["CompiledTemplate", "ScopedAnswers", "compile_template"]
