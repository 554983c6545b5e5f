from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from common.form_engine.models import DraftRecord, SubmissionFilter, SubmissionRecord


class PersistenceGateway(Protocol):
    def create_submission(self, record: SubmissionRecord) -> str:
        """Store a submitted form and return its id."""
        ...

    def create_draft(self, record: DraftRecord) -> str:
        """Store an in-progress form and return its id."""
        ...

    def get_draft(self, template_id: str, session_id: str) -> DraftRecord | None:
        """The latest draft saved for the session, or None."""
        ...

    def list_submissions(self, query: SubmissionFilter | None = None) -> list[SubmissionRecord]:
        ...


@dataclass
class InMemoryPersistence:
    submissions: dict[str, SubmissionRecord] = field(default_factory=dict)
    drafts: dict[str, DraftRecord] = field(default_factory=dict)

    def create_submission(self, record: SubmissionRecord) -> str:
        record_id = f"sub_{uuid.uuid4().hex}"
        self.submissions[record_id] = record
        return record_id

    def create_draft(self, record: DraftRecord) -> str:
        # One draft per session; saving again replaces it.
        self.drafts[record.session_id] = record
        return record.session_id

    def get_draft(self, template_id: str, session_id: str) -> DraftRecord | None:
        draft = self.drafts.get(session_id)
        if draft is None or draft.template_id != template_id:
            return None
        return draft

    def list_submissions(self, query: SubmissionFilter | None = None) -> list[SubmissionRecord]:
        return _apply_filter(list(self.submissions.values()), query)


@dataclass(frozen=True)
class LocalJsonPersistence:
    """Records as JSON files under ``root_dir/<kind>/<template_id>/``."""

    root_dir: Path

    def create_submission(self, record: SubmissionRecord) -> str:
        record_id = f"sub_{uuid.uuid4().hex}"
        self._write("submissions", record.template_id, record_id, record.model_dump(mode="json"))
        return record_id

    def create_draft(self, record: DraftRecord) -> str:
        self._write("drafts", record.template_id, record.session_id, record.model_dump(mode="json"))
        return record.session_id

    def get_draft(self, template_id: str, session_id: str) -> DraftRecord | None:
        path = self.root_dir / "drafts" / template_id / f"{session_id}.json"
        if not path.exists():
            return None
        return DraftRecord.model_validate(json.loads(path.read_text(encoding="utf-8")))

    def list_submissions(self, query: SubmissionFilter | None = None) -> list[SubmissionRecord]:
        base = self.root_dir / "submissions"
        if query and query.template_id:
            paths = sorted((base / query.template_id).glob("*.json"))
        else:
            paths = sorted(base.glob("*/*.json"))
        records = [SubmissionRecord.model_validate(json.loads(p.read_text(encoding="utf-8"))) for p in paths]
        return _apply_filter(records, query)

    def _write(self, kind: str, template_id: str, record_id: str, payload: dict) -> None:
        out_dir = self.root_dir / kind / template_id
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / f"{record_id}.json"
        out_path.write_text(json.dumps(payload, indent=2))


def _apply_filter(records: list[SubmissionRecord], query: SubmissionFilter | None) -> list[SubmissionRecord]:
    if query is None:
        return sorted(records, key=lambda r: r.submitted_at, reverse=True)
    if query.template_id:
        records = [r for r in records if r.template_id == query.template_id]
    records = sorted(records, key=lambda r: r.submitted_at, reverse=True)
    if query.limit is not None:
        records = records[: query.limit]
    return records
