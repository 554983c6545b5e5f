import pytest

from common.form_engine.models import NotificationDefinition, TriggerRule
from common.form_engine.registry import TriggerRuleSetRegistry, registry
from common.form_engine.rule_set import TriggerRuleSet
from common.form_engine.rules.rpas_incident import RPAS_INCIDENT
from common.form_engine.triggers import TriggerAggregator, compute_triggers, describe_triggers


@pytest.fixture
def rpas_rules():
    return RPAS_INCIDENT().rules


def _all_no(rules, **overrides):
    answers = {}
    for rule in rules:
        if rule.predicate:
            answers[rule.predicate.split()[0]] = False
    answers.update(overrides)
    return answers


def test_only_always_active_rule_fires_when_everything_is_no(rpas_rules):
    assert compute_triggers(rpas_rules, _all_no(rpas_rules)) == frozenset({"INTERNAL_NOTIFICATION"})


def test_serious_injury_triggers_tsb_and_worksafebc(rpas_rules):
    active = compute_triggers(rpas_rules, _all_no(rpas_rules, serious_injury=True))
    assert active == frozenset({"TSB_IMMEDIATE", "WORKSAFEBC", "INTERNAL_NOTIFICATION"})


def test_result_is_the_union_of_independent_rules(rpas_rules):
    answers = _all_no(rpas_rules, fly_away=True, near_miss=True, under_sfoc=True)
    active = compute_triggers(rpas_rules, answers)
    assert active == frozenset({"TRANSPORT_CANADA", "SFOC_FORM", "INTERNAL_NOTIFICATION"})


def test_string_answers_do_not_satisfy_boolean_predicates(rpas_rules):
    active = compute_triggers(rpas_rules, {"fatality": "true"})
    assert "TSB_IMMEDIATE" not in active


def test_aggregation_is_idempotent(rpas_rules):
    answers = _all_no(rpas_rules, fatality=True, boundary_violation=True)
    aggregator = TriggerAggregator(rpas_rules)
    first = aggregator.run(answers)
    second = aggregator.run(answers)
    assert first == second
    assert "TSB_IMMEDIATE:fatality" in first.matched_rule_ids
    assert "WORKSAFEBC:fatality" in first.matched_rule_ids


def test_rpas_rule_set_is_registered():
    assert "rpas_incident" in registry
    assert registry.get("rpas_incident") is RPAS_INCIDENT


def test_registry_rejects_duplicates_and_missing_ids():
    local = TriggerRuleSetRegistry()

    class Example(TriggerRuleSet):
        rule_set_id = "example"
        rules = [TriggerRule(code="X", predicate="a")]

    class Nameless(TriggerRuleSet):
        pass

    local.register(Example)
    with pytest.raises(ValueError):
        local.register(Example)
    with pytest.raises(ValueError):
        local.register(Nameless)
    assert list(local.ids()) == ["example"]
    assert local.create("example").rules[0].code == "X"


def test_describe_triggers_follows_declaration_order():
    notifications = RPAS_INCIDENT().notifications
    described = describe_triggers({"WORKSAFEBC", "TSB_IMMEDIATE", "CUSTOM"}, notifications)
    assert [n.code for n in described] == ["TSB_IMMEDIATE", "WORKSAFEBC", "CUSTOM"]
    assert described[0].phone == "1-800-387-3557"
    assert described[-1] == NotificationDefinition(code="CUSTOM", label="CUSTOM")


def test_unknown_notification_code_falls_back_to_a_bare_definition():
    item = RPAS_INCIDENT().notification("NOT_DECLARED")
    assert item.code == "NOT_DECLARED"


def test_rule_needs_predicate_or_always_active():
    with pytest.raises(ValueError):
        TriggerRule(code="X")
