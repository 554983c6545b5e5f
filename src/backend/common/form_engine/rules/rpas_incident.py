from __future__ import annotations

from ..models import NotificationDefinition, TriggerRule
from ..registry import register_rule_set
from ..rule_set import TriggerRuleSet

TSB_IMMEDIATE = "TSB_IMMEDIATE"
TRANSPORT_CANADA = "TRANSPORT_CANADA"
WORKSAFEBC = "WORKSAFEBC"
SFOC_FORM = "SFOC_FORM"
INTERNAL_NOTIFICATION = "INTERNAL_NOTIFICATION"


def _when_yes(code: str, field_id: str) -> TriggerRule:
    return TriggerRule(rule_id=f"{code}:{field_id}", code=code, predicate=f"{field_id} === true")


@register_rule_set
class RPAS_INCIDENT(TriggerRuleSet):
    rule_set_id = "rpas_incident"
    title = "RPAS occurrence regulatory notifications"
    notifications = [
        NotificationDefinition(
            code=TSB_IMMEDIATE,
            label="TSB immediate notification",
            instructions="Call the Transportation Safety Board immediately, before any other action.",
            phone="1-800-387-3557",
            alt_phone="1-819-994-3741",
        ),
        NotificationDefinition(
            code=TRANSPORT_CANADA,
            label="Transport Canada notification",
            instructions=(
                "Submit a CADORS report. If operating under an SFOC, also submit the RPAS "
                "aviation occurrence reporting form."
            ),
        ),
        NotificationDefinition(
            code=WORKSAFEBC,
            label="WorkSafeBC notification",
            instructions="Report the workplace incident to WorkSafeBC.",
        ),
        NotificationDefinition(
            code=SFOC_FORM,
            label="SFOC occurrence report",
            instructions="File the occurrence report required by the operation's SFOC.",
        ),
        NotificationDefinition(
            code=INTERNAL_NOTIFICATION,
            label="Internal notification",
            instructions="Notify the accountable executive of every incident.",
        ),
    ]
    rules = [
        _when_yes(TSB_IMMEDIATE, "fatality"),
        _when_yes(TSB_IMMEDIATE, "serious_injury"),
        _when_yes(TSB_IMMEDIATE, "collision_manned"),
        _when_yes(TSB_IMMEDIATE, "rpas_over_25kg"),
        _when_yes(TRANSPORT_CANADA, "fly_away"),
        _when_yes(TRANSPORT_CANADA, "boundary_violation"),
        _when_yes(TRANSPORT_CANADA, "unintended_contact"),
        _when_yes(TRANSPORT_CANADA, "equipment_damage"),
        _when_yes(TRANSPORT_CANADA, "near_miss"),
        _when_yes(WORKSAFEBC, "serious_injury"),
        _when_yes(WORKSAFEBC, "fatality"),
        _when_yes(SFOC_FORM, "under_sfoc"),
        TriggerRule(rule_id=f"{INTERNAL_NOTIFICATION}:always", code=INTERNAL_NOTIFICATION, always_active=True),
    ]
