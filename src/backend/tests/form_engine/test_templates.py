import json

import pytest
import yaml

from common.form_engine.catalog import build_catalog, main as catalog_main
from common.form_engine.compiler import compile_template
from common.form_engine.models import FieldType, ReferenceItem
from common.form_engine.template import (
    fields_of,
    get_builtin_template,
    list_builtin_templates,
    load_template,
    resolve_options,
    resolve_reference_options,
    sections_of,
)
from gateways.reference_data import InMemoryReferenceData


def test_builtin_library_compiles():
    templates = {t.id: t for t in list_builtin_templates()}
    assert set(templates) == {"daily_flight_log", "flha", "incident_report"}
    for template in templates.values():
        compile_template(template)


def test_unknown_builtin_template():
    with pytest.raises(KeyError):
        get_builtin_template("nope")


def test_flha_structure():
    flha = get_builtin_template("flha")
    sections = sections_of(flha)
    assert [s.id for s in sections] == ["header", "hazards", "signoff"]
    hazards = sections[1]
    assert hazards.repeatable is True
    risk_fields = [f.id for f in fields_of(hazards) if f.type == FieldType.RISK_MATRIX]
    assert risk_fields == ["initial_risk", "residual_risk"]


def test_resolve_options_expands_named_enumerations():
    hazards = sections_of(get_builtin_template("flha"))[1]
    category = next(f for f in fields_of(hazards) if f.id == "hazard_category")
    values = [o.value for o in resolve_options(category)]
    assert values[0] == "environmental"
    assert "other" in values


def test_hazard_category_subsets_partition_the_full_list(make_field):
    full = [o.value for o in resolve_options(make_field("c", "select", options="HAZARD_CATEGORIES"))]
    standard = [o.value for o in resolve_options(make_field("s", "select", options="STANDARD_HAZARD_CATEGORIES"))]
    rpas = [o.value for o in resolve_options(make_field("r", "select", options="RPAS_HAZARD_CATEGORIES"))]
    assert "environmental" in standard and "airspace" not in standard
    assert "airspace" in rpas and "ground_crew" in rpas and "environmental" not in rpas
    assert full == standard + rpas + ["other"]


def test_incident_root_cause_uses_factor_lists():
    root_cause = next(s for s in sections_of(get_builtin_template("incident_report")) if s.id == "root_cause")
    by_id = {f.id: f for f in fields_of(root_cause)}
    personal = [o.label for o in resolve_options(by_id["personal_factors"])]
    system = [o.label for o in resolve_options(by_id["system_factors"])]
    assert personal[0] == "Inadequate physical capability"
    assert "Fatigue or overwork" in personal
    assert system[-1] == "Inadequate purchasing controls"
    assert len(personal) == len(system) == 7


def test_resolve_options_for_unknown_name_is_empty(make_field):
    assert resolve_options(make_field("x", "select", options="NOT_A_LIST")) == []
    assert resolve_options(make_field("y", "text")) == []


def test_literal_options_accept_bare_strings(make_field):
    field = make_field("x", "select", options=["red", {"value": "blue", "label": "Blue"}])
    assert [(o.value, o.label) for o in resolve_options(field)] == [("red", "red"), ("blue", "Blue")]


def test_reference_options_come_from_the_provider(make_field):
    provider = InMemoryReferenceData(items={"projects": [ReferenceItem(id="p1", label="North Ridge", detail="2026")]})
    field = make_field("project", "reference_lookup", reference="projects")
    options = resolve_reference_options(field, provider)
    assert [(o.value, o.label, o.description) for o in options] == [("p1", "North Ridge", "2026")]


def test_load_template_from_yaml_and_json(tmp_path):
    raw = {
        "id": "mini",
        "sections": [{"id": "a", "fields": [{"id": "note", "type": "text", "required": True}]}],
    }
    yaml_path = tmp_path / "mini.yaml"
    yaml_path.write_text(yaml.safe_dump(raw))
    json_path = tmp_path / "mini.json"
    json_path.write_text(json.dumps(raw))

    assert load_template(yaml_path) == load_template(json_path)
    with pytest.raises(FileNotFoundError):
        load_template(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_template(bad)


def test_catalog_lists_rule_sets_and_templates(capsys):
    catalog = build_catalog()
    rule_sets = {entry["rule_set_id"]: entry for entry in catalog["rule_sets"]}
    assert rule_sets["rpas_incident"]["codes"] == [
        "TSB_IMMEDIATE",
        "TRANSPORT_CANADA",
        "WORKSAFEBC",
        "SFOC_FORM",
        "INTERNAL_NOTIFICATION",
    ]
    templates = {entry["template_id"]: entry for entry in catalog["templates"]}
    assert templates["incident_report"]["trigger_rule_set"] == "rpas_incident"
    assert templates["flha"]["trigger_rule_set"] is None

    catalog_main(["--format", "json"])
    printed = json.loads(capsys.readouterr().out)
    assert [t["template_id"] for t in printed["templates"]] == ["daily_flight_log", "flha", "incident_report"]
