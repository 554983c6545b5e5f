from __future__ import annotations

from typing import List

from .models import NotificationDefinition, TriggerRule


class TriggerRuleSet:
    """A named, flat table of notification trigger rules.

    Subclasses declare their rules and notification definitions as class
    attributes and self-register with ``@register_rule_set``.
    """

    rule_set_id: str
    title: str = ""
    notifications: List[NotificationDefinition] = []
    rules: List[TriggerRule] = []

    def __init__(self):
        if not getattr(self, "rule_set_id", None):
            raise ValueError("TriggerRuleSet must define rule_set_id")

    def notification(self, code: str) -> NotificationDefinition:
        for item in self.notifications:
            if item.code == code:
                return item
        return NotificationDefinition(code=code, label=code)
