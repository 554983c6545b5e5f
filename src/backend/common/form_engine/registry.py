from __future__ import annotations

from typing import Dict, Iterable, Type

from .rule_set import TriggerRuleSet


class TriggerRuleSetRegistry:
    def __init__(self):
        self._rule_sets: Dict[str, Type[TriggerRuleSet]] = {}

    def register(self, rule_set_cls: Type[TriggerRuleSet]) -> None:
        rule_set_id = getattr(rule_set_cls, "rule_set_id", None)
        if not rule_set_id:
            raise ValueError("Rule set class missing rule_set_id")
        if rule_set_id in self._rule_sets:
            raise ValueError(f"Duplicate rule_set_id registered: {rule_set_id}")
        self._rule_sets[rule_set_id] = rule_set_cls

    def create(self, rule_set_id: str) -> TriggerRuleSet:
        return self.get(rule_set_id)()

    def get(self, rule_set_id: str) -> Type[TriggerRuleSet]:
        return self._rule_sets[rule_set_id]

    def __contains__(self, rule_set_id: object) -> bool:
        return rule_set_id in self._rule_sets

    def ids(self) -> Iterable[str]:
        return self._rule_sets.keys()


registry = TriggerRuleSetRegistry()


def register_rule_set(rule_set_cls: Type[TriggerRuleSet]) -> Type[TriggerRuleSet]:
    registry.register(rule_set_cls)
    return rule_set_cls
