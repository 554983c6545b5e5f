"""Read-only access to form templates and the packaged template library."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List

import yaml

from .models import FieldDefinition, FormTemplate, OptionItem, SectionDefinition
from .options import NAMED_OPTIONS

if TYPE_CHECKING:
    from gateways.reference_data import ReferenceDataProvider

BUILTIN_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def sections_of(template: FormTemplate) -> List[SectionDefinition]:
    return list(template.sections)


def fields_of(section: SectionDefinition) -> List[FieldDefinition]:
    return list(section.fields)


def resolve_options(field: FieldDefinition) -> List[OptionItem]:
    """Return the literal option list, expanding a named enumeration if needed."""
    if field.options is None:
        return []
    if isinstance(field.options, str):
        return list(NAMED_OPTIONS.get(field.options, []))
    return list(field.options)


def resolve_reference_options(field: FieldDefinition, provider: "ReferenceDataProvider") -> List[OptionItem]:
    if not field.reference:
        return []
    return [
        OptionItem(value=item.id, label=item.label, description=item.detail)
        for item in provider.list_items(field.reference)
    ]


def load_template(path: Path | str) -> FormTemplate:
    """Load and structurally validate a template from a YAML or JSON file."""
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Template not found: {resolved}")

    text = resolved.read_text(encoding="utf-8")
    if resolved.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)
    if not isinstance(raw, dict):
        raise ValueError(f"Template file must contain a mapping: {resolved}")
    return FormTemplate.model_validate(raw)


@lru_cache(maxsize=1)
def _builtin_templates() -> Dict[str, FormTemplate]:
    templates: Dict[str, FormTemplate] = {}
    for path in sorted(BUILTIN_TEMPLATES_DIR.glob("*.yaml")):
        template = load_template(path)
        if template.id in templates:
            raise ValueError(f"Duplicate built-in template id: {template.id}")
        templates[template.id] = template
    return templates


def list_builtin_templates() -> List[FormTemplate]:
    return list(_builtin_templates().values())


def get_builtin_template(template_id: str) -> FormTemplate:
    templates = _builtin_templates()
    if template_id not in templates:
        raise KeyError(f"Unknown template: {template_id}")
    return templates[template_id]


__all__ = [
    "BUILTIN_TEMPLATES_DIR",
    "fields_of",
    "get_builtin_template",
    "list_builtin_templates",
    "load_template",
    "resolve_options",
    "resolve_reference_options",
    "sections_of",
]
