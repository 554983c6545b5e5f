from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from .answers import answer_key
from .compiler import CompiledTemplate
from .models import Duration, FieldDefinition, FieldType, InstanceCount, SectionDefinition, SumOf
from .risk import classify

Number = Union[int, float]


def compute_value(
    compiled: CompiledTemplate,
    section: SectionDefinition,
    field: FieldDefinition,
    answers: Mapping[str, Any],
    instances: Mapping[str, List[int]],
    index: Optional[int] = None,
) -> Any:
    """Derive the value of a calculated field from the current answers."""
    scope = compiled.scoped(answers, section, index)
    if field.type == FieldType.RISK_MATRIX:
        severity_field, probability_field = compiled.risk_bindings[(section.id, field.id)]
        return classify(scope.get(severity_field), scope.get(probability_field)).value

    calc = field.calculation
    if isinstance(calc, InstanceCount):
        return len(instances.get(calc.section, []))
    if isinstance(calc, SumOf):
        total: Number = 0
        for i in instances.get(calc.section, []):
            value = answers.get(answer_key(calc.section, i, calc.field))
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                total += value
        return total
    if isinstance(calc, Duration):
        return _minutes_between(scope.get(calc.start), scope.get(calc.end))
    raise ValueError(f"Field '{field.id}' is not calculated")


def _minutes_between(start: Any, end: Any) -> Optional[int]:
    start_at = _parse_clock(start)
    end_at = _parse_clock(end)
    if start_at is None or end_at is None:
        return None
    minutes = int((end_at - start_at).total_seconds() // 60)
    # Landing after midnight.
    if minutes < 0:
        minutes += 24 * 60
    return minutes


def _parse_clock(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def recompute_all(
    compiled: CompiledTemplate,
    answers: Dict[str, Any],
    instances: Mapping[str, List[int]],
) -> None:
    """Write every calculated field's value into ``answers`` in place.

    Repeatable sections go first so top-level sums see fresh per-instance values.
    """
    ordered = sorted(compiled.sections.values(), key=lambda s: not s.repeatable)
    for section in ordered:
        calculated = [f for f in section.fields if f.is_calculated]
        if not calculated:
            continue
        if section.repeatable:
            for index in instances.get(section.id, []):
                for f in calculated:
                    answers[answer_key(section.id, index, f.id)] = compute_value(
                        compiled, section, f, answers, instances, index
                    )
        else:
            for f in calculated:
                answers[f.id] = compute_value(compiled, section, f, answers, instances)
