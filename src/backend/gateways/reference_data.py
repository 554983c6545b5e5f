from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Protocol

from common.form_engine.models import ReferenceItem


class ReferenceDataProvider(Protocol):
    def list_items(self, kind: str) -> list[ReferenceItem]:
        """Selectable entities of one kind (projects, aircraft, operators...)."""
        ...


@dataclass
class InMemoryReferenceData:
    items: dict[str, list[ReferenceItem]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Iterable[ReferenceItem]]) -> "InMemoryReferenceData":
        return cls(items={kind: list(entries) for kind, entries in data.items()})

    def list_items(self, kind: str) -> list[ReferenceItem]:
        return list(self.items.get(kind, []))
