import logging

import pytest

from common.form_engine.compiler import compile_template
from common.form_engine.config import EngineConfig, UnparsableConditionPolicy
from common.form_engine.errors import MalformedTemplate
from common.form_engine.models import FormTemplate


def _section(section_id, *fields, **kwargs):
    return {"id": section_id, "fields": list(fields), **kwargs}


def test_valid_template_compiles_with_risk_bindings(hazard_template):
    compiled = compile_template(hazard_template)
    assert compiled.risk_bindings[("hazards", "initial_risk")] == ("severity", "probability")
    assert compiled.risk_bindings[("hazards", "residual_risk")] == ("residual_severity", "residual_probability")
    assert set(compiled.top_level_fields) >= {"location", "visitor_count", "completed_by"}
    assert "description" not in compiled.top_level_fields


def test_every_problem_is_reported_together(make_template):
    template = make_template(
        _section(
            "a",
            {"id": "x", "type": "text"},
            {"id": "x", "type": "text"},
            {"id": "y", "type": "text", "show_if": "missing === true"},
            {"id": "z", "type": "select", "options": "NO_SUCH_LIST"},
        ),
        _section("b", {"id": "y", "type": "text"}),
        _section("a", {"id": "w", "type": "text"}),
    )
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template)
    problems = excinfo.value.problems
    assert any("duplicate field id 'x'" in p for p in problems)
    assert any("duplicate section id 'a'" in p for p in problems)
    assert any("field id 'y' in section 'b' collides" in p for p in problems)
    assert any("unknown field 'missing'" in p for p in problems)
    assert any("NO_SUCH_LIST" in p for p in problems)


def test_repeatable_sections_may_reuse_top_level_ids(make_template):
    template = make_template(
        _section("header", {"id": "notes", "type": "text"}),
        _section("entries", {"id": "notes", "type": "text"}, repeatable=True),
    )
    compiled = compile_template(template)
    assert compiled.top_level_fields["notes"].id == "notes"


def test_top_level_id_cannot_shadow_an_instance_key(make_template):
    template = make_template(
        _section("header", {"id": "hazards_0_description", "type": "text"}),
        _section("hazards", {"id": "description", "type": "text", "required": True}, repeatable=True),
    )
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template)
    assert any(
        "'hazards_0_description' in section 'header' collides with instance keys of repeatable section 'hazards'" in p
        for p in excinfo.value.problems
    )


def test_top_level_id_that_only_looks_like_an_instance_key_compiles(make_template):
    template = make_template(
        _section("header", {"id": "hazards_0_summary", "type": "text"}),
        _section("hazards", {"id": "description", "type": "text"}, repeatable=True),
    )
    compiled = compile_template(template)
    assert "hazards_0_summary" in compiled.top_level_fields


def test_mixed_operators_are_rejected_under_any_policy(make_template):
    template = make_template(
        _section(
            "a",
            {"id": "p", "type": "yesno"},
            {"id": "q", "type": "yesno"},
            {"id": "r", "type": "text", "show_if": "p && q || !p"},
        )
    )
    config = EngineConfig(unparsable_condition_policy=UnparsableConditionPolicy.FAIL_OPEN)
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template, config)
    assert "mixes && and ||" in str(excinfo.value)


def test_unparsable_condition_rejected_by_default(make_template):
    template = make_template(
        _section("a", {"id": "weight", "type": "number"}, {"id": "heavy", "type": "yesno", "show_if": "weight > 25"})
    )
    with pytest.raises(MalformedTemplate):
        compile_template(template)


def test_fail_open_policy_keeps_the_field_visible(make_template, caplog):
    template = make_template(
        _section("a", {"id": "weight", "type": "number"}, {"id": "heavy", "type": "yesno", "show_if": "weight > 25"})
    )
    config = EngineConfig(unparsable_condition_policy=UnparsableConditionPolicy.FAIL_OPEN)
    with caplog.at_level(logging.WARNING, logger="common.form_engine.compiler"):
        compiled = compile_template(template, config)
        section = compiled.sections["a"]
        heavy = section.fields[1]
        assert compiled.is_visible(section, heavy, {}) is True
    assert ("a", "heavy") in compiled.fail_open
    assert "weight > 25" in caplog.text


def test_dangling_risk_and_calculation_bindings(make_template):
    template = make_template(
        _section("a", {"id": "score", "type": "risk_matrix"}),
        _section(
            "b",
            {"id": "count", "type": "computed", "calculation": {"kind": "instance_count", "section": "a"}},
            {"id": "total", "type": "computed", "calculation": {"kind": "sum", "section": "c", "field": "nope"}},
            {"id": "minutes", "type": "computed", "calculation": {"kind": "duration", "start": "t0", "end": "t1"}},
        ),
        _section("c", {"id": "value", "type": "number"}, repeatable=True),
    )
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template)
    problems = excinfo.value.problems
    assert any("bound to unknown field 'severity'" in p for p in problems)
    assert any("needs repeatable section 'a'" in p for p in problems)
    assert any("sums unknown field 'c.nope'" in p for p in problems)
    assert any("unknown field 't0'" in p for p in problems)


def test_explicit_risk_binding_wins(make_template):
    template = make_template(
        _section(
            "a",
            {"id": "sev", "type": "select", "options": "SEVERITY_RATINGS"},
            {"id": "prob", "type": "select", "options": "PROBABILITY_RATINGS"},
            {"id": "score", "type": "risk_matrix", "severity_field": "sev", "probability_field": "prob"},
        )
    )
    assert compile_template(template).risk_bindings[("a", "score")] == ("sev", "prob")


def test_trigger_rules_must_reference_top_level_fields(make_template):
    template = make_template(
        _section("a", {"id": "fatality", "type": "yesno"}),
        has_trigger_evaluation=True,
        trigger_rules=[
            {"code": "OK", "predicate": "fatality === true"},
            {"code": "BAD", "predicate": "ghost === true"},
        ],
    )
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template)
    assert any("BAD references unknown field 'ghost'" in p for p in excinfo.value.problems)


def test_unknown_rule_set_is_reported(make_template):
    template = make_template(
        _section("a", {"id": "x", "type": "yesno"}),
        has_trigger_evaluation=True,
        trigger_rule_set="does_not_exist",
    )
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template)
    assert "unknown trigger rule set 'does_not_exist'" in str(excinfo.value)


def test_rpas_rule_set_requires_its_fields(make_template):
    template = make_template(
        _section("a", {"id": "fatality", "type": "yesno"}),
        has_trigger_evaluation=True,
        trigger_rule_set="rpas_incident",
    )
    with pytest.raises(MalformedTemplate) as excinfo:
        compile_template(template)
    assert any("serious_injury" in p for p in excinfo.value.problems)


def test_structural_errors_surface_from_the_model():
    with pytest.raises(ValueError):
        FormTemplate.model_validate({"id": "t", "sections": [{"id": "a", "fields": [{"id": "c", "type": "computed"}]}]})
    with pytest.raises(ValueError):
        FormTemplate.model_validate({"id": "t", "sections": [{"id": "a", "fields": [{"id": "x", "type": "hologram"}]}]})
    with pytest.raises(ValueError):
        FormTemplate.model_validate({"id": "t", "sections": [{"id": "a", "fields": [{"id": "bad id", "type": "text"}]}]})
