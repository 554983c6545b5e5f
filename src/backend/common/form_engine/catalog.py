from __future__ import annotations

import argparse
import json
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field

from .registry import registry
from .template import list_builtin_templates

# Ensure built-in rule sets are imported/registered when generating a catalog.
from . import rules as _builtin_rules  # noqa: F401


class RuleSetCatalogEntry(BaseModel):
    rule_set_id: str
    title: str = ""
    codes: List[str] = Field(default_factory=list)
    rules: List[Dict[str, Any]] = Field(default_factory=list)

    module: str
    class_name: str


class TemplateCatalogEntry(BaseModel):
    template_id: str
    name: str = ""
    category: str = ""
    version: str = ""
    sections: List[str] = Field(default_factory=list)
    field_count: int = 0
    trigger_rule_set: str | None = None


def build_rule_set_catalog() -> List[RuleSetCatalogEntry]:
    entries: List[RuleSetCatalogEntry] = []
    for rule_set_id in registry.ids():
        rule_set_cls = registry.get(rule_set_id)
        rules = list(getattr(rule_set_cls, "rules", []) or [])
        codes: List[str] = []
        for rule in rules:
            if rule.code not in codes:
                codes.append(rule.code)

        entries.append(
            RuleSetCatalogEntry(
                rule_set_id=rule_set_id,
                title=getattr(rule_set_cls, "title", ""),
                codes=codes,
                rules=[rule.model_dump(exclude_defaults=True) for rule in rules],
                module=getattr(rule_set_cls, "__module__", ""),
                class_name=getattr(rule_set_cls, "__name__", ""),
            )
        )

    entries.sort(key=lambda e: e.rule_set_id)
    return entries


def build_template_catalog() -> List[TemplateCatalogEntry]:
    entries = [
        TemplateCatalogEntry(
            template_id=t.id,
            name=t.name,
            category=t.category,
            version=t.version,
            sections=[s.id for s in t.sections],
            field_count=sum(len(s.fields) for s in t.sections),
            trigger_rule_set=t.trigger_rule_set if t.has_trigger_evaluation else None,
        )
        for t in list_builtin_templates()
    ]
    entries.sort(key=lambda e: e.template_id)
    return entries


def build_catalog() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "rule_sets": [e.model_dump() for e in build_rule_set_catalog()],
        "templates": [e.model_dump() for e in build_template_catalog()],
    }


def _dump_json(catalog: Dict[str, Any]) -> str:
    return json.dumps(catalog, indent=2, sort_keys=True)


def _dump_yaml(catalog: Dict[str, Any]) -> str:
    return yaml.safe_dump(catalog, sort_keys=True)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Generate a catalog of form templates and trigger rule sets.")
    parser.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="yaml",
        help="Output format (default: yaml).",
    )
    args = parser.parse_args(argv)

    catalog = build_catalog()
    if args.format == "json":
        print(_dump_json(catalog))
    else:
        print(_dump_yaml(catalog))


if __name__ == "__main__":
    main()
