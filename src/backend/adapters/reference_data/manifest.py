from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from common.form_engine.models import ReferenceItem
from gateways.reference_data import InMemoryReferenceData


def reference_data_from_manifest(manifest: dict[str, Any]) -> InMemoryReferenceData:
    """
    Build a reference data provider from a JSON manifest.

    Expected shape:
      {
        "reference_data": {
          "projects": [
            {"id": "p-1", "label": "North Ridge survey", "detail": "..."}
          ],
          "aircraft": [...]
        }
      }

    Notes:
    - id and label are required; label falls back to name when absent
    - the top-level "reference_data" wrapper is optional
    """
    kinds = _select_kinds(manifest)
    items: dict[str, list[ReferenceItem]] = {}
    for kind, entries in kinds.items():
        if not isinstance(entries, list):
            raise ValueError(f"Reference data for '{kind}' must be a list.")
        parsed: list[ReferenceItem] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError("Reference data entries must be objects.")
            item_id = entry.get("id")
            if item_id in (None, ""):
                raise ValueError(f"Reference entry in '{kind}' missing required field: id")
            label = entry.get("label") or entry.get("name")
            if not label:
                raise ValueError(f"Reference entry '{item_id}' in '{kind}' missing required field: label")
            parsed.append(ReferenceItem(id=str(item_id), label=str(label), detail=str(entry.get("detail") or "")))
        items[str(kind)] = parsed
    return InMemoryReferenceData(items=items)


def load_reference_manifest(path: Path | str) -> InMemoryReferenceData:
    resolved = Path(path)
    manifest = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(manifest, dict):
        raise ValueError(f"Reference manifest must be a JSON object: {resolved}")
    return reference_data_from_manifest(manifest)


def _select_kinds(manifest: dict[str, Any]) -> dict[str, Iterable[Any]]:
    if "reference_data" in manifest:
        return manifest.get("reference_data") or {}
    return manifest
