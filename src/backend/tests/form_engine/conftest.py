import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import itertools
from datetime import datetime, timezone

import pytest

from common.form_engine.config import EngineConfig
from common.form_engine.models import FieldDefinition, FormTemplate, SectionDefinition
from common.form_engine.session import FormInterpreter


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_interpreter(now):
    def _make(config: EngineConfig | None = None, **kwargs) -> FormInterpreter:
        counter = itertools.count(1)
        kwargs.setdefault("clock", lambda: now)
        kwargs.setdefault("id_factory", lambda: f"form_{next(counter)}")
        return FormInterpreter(config, **kwargs)

    return _make


@pytest.fixture
def interpreter(make_interpreter) -> FormInterpreter:
    return make_interpreter()


@pytest.fixture
def make_field():
    def _make(field_id: str, field_type: str = "text", **kwargs) -> FieldDefinition:
        return FieldDefinition(id=field_id, type=field_type, **kwargs)

    return _make


@pytest.fixture
def make_template():
    def _make(*sections: SectionDefinition | dict, template_id: str = "test_form", **kwargs) -> FormTemplate:
        return FormTemplate(id=template_id, name="Test form", sections=list(sections), **kwargs)

    return _make


@pytest.fixture
def hazard_template(make_template):
    return make_template(
        {
            "id": "header",
            "title": "Header",
            "fields": [
                {"id": "location", "type": "text", "required": True},
                {"id": "has_visitors", "type": "yesno"},
                {"id": "visitor_count", "type": "number", "required": True, "show_if": "has_visitors === true"},
            ],
        },
        {
            "id": "hazards",
            "title": "Hazards",
            "repeatable": True,
            "fields": [
                {"id": "description", "type": "text", "required": True},
                {"id": "severity", "type": "select", "options": "SEVERITY_RATINGS"},
                {"id": "probability", "type": "select", "options": "PROBABILITY_RATINGS"},
                {"id": "initial_risk", "type": "risk_matrix"},
                {"id": "residual_severity", "type": "select", "options": "SEVERITY_RATINGS"},
                {"id": "residual_probability", "type": "select", "options": "PROBABILITY_RATINGS"},
                {"id": "residual_risk", "type": "risk_matrix"},
                {"id": "controls", "type": "textarea", "required": True, "show_if": "severity === '1'"},
            ],
        },
        {
            "id": "signoff",
            "title": "Sign-Off",
            "fields": [
                {"id": "completed_by", "type": "signature", "required": True},
                {"id": "crew", "type": "multi_signature"},
                {"id": "photos", "type": "file_reference", "multiple": True},
                {"id": "log_file", "type": "file_reference"},
            ],
        },
        template_id="hazard_form",
    )
