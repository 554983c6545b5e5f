"""Form session controller.

A FormSession owns the answer set of one in-progress form. Every mutation
goes through FormInterpreter, which recomputes calculated fields and the
active notification triggers from scratch after each change, so the derived
state never depends on the order answers were given in.
"""

from __future__ import annotations

import copy
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Set, Tuple, Union

from .answers import answer_key, coerce_answer, is_empty
from .calculations import recompute_all
from .compiler import CompiledTemplate, compile_template
from .config import EngineConfig
from .errors import AttachmentNotAllowed, InvalidAnswer, ReadOnlyField, SessionClosed, UnknownAnswerKey, UnknownSection
from .models import (
    DefaultKind,
    DraftRecord,
    FieldDefinition,
    FieldType,
    FieldView,
    FileReference,
    FormTemplate,
    FormView,
    Identity,
    SectionDefinition,
    SectionView,
    SessionState,
    SignatureRecord,
    SubmissionRecord,
    ValidationFailure,
)
from .registry import TriggerRuleSetRegistry
from .triggers import TriggerAggregator, describe_triggers

if TYPE_CHECKING:
    from gateways.attachments import AttachmentGateway, AttachmentUpload
    from gateways.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


@dataclass
class FormSession:
    session_id: str
    compiled: CompiledTemplate
    aggregator: TriggerAggregator
    answers: Dict[str, Any] = field(default_factory=dict)
    instances: Dict[str, List[int]] = field(default_factory=dict)
    next_instance: Dict[str, int] = field(default_factory=dict)
    expanded: Set[str] = field(default_factory=set)
    active_triggers: frozenset[str] = frozenset()
    matched_rules: Tuple[str, ...] = ()
    state: SessionState = SessionState.COMPOSING
    submission: Optional[SubmissionRecord] = None

    @property
    def template(self) -> FormTemplate:
        return self.compiled.template

    @property
    def template_id(self) -> str:
        return self.compiled.template.id

    @property
    def is_submitted(self) -> bool:
        return self.state == SessionState.SUBMITTED


class FormInterpreter:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        rule_sets: Optional[TriggerRuleSetRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._config = config or EngineConfig()
        self._rule_sets = rule_sets
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: f"form_{uuid.uuid4().hex}")

    @property
    def config(self) -> EngineConfig:
        return self._config

    # Lifecycle

    def start_session(self, template: FormTemplate) -> FormSession:
        """Validate the template and open a new session (MalformedTemplate on failure)."""
        session = self._new_session(template, self._id_factory())
        for section in session.compiled.sections.values():
            if not section.repeatable:
                self._seed_defaults(session, section, None)
                continue
            session.instances[section.id] = []
            count = section.initial_instances
            if count is None:
                count = self._config.initial_repeatable_instances
            for _ in range(count):
                self._allocate_instance(session, section)
        self._recompute(session)
        logger.info("Started session %s for template %s", session.session_id, template.id)
        return session

    def restore_session(self, template: FormTemplate, draft: DraftRecord) -> FormSession:
        """Reopen a saved draft. Unknown keys are kept but play no part in evaluation."""
        if draft.template_id != template.id:
            raise ValueError(f"Draft belongs to template '{draft.template_id}', not '{template.id}'")
        session = self._new_session(template, draft.session_id)
        for section in session.compiled.sections.values():
            if section.repeatable:
                indices = sorted(set(draft.instances.get(section.id) or _indices_in_keys(section, draft.answers)))
                session.instances[section.id] = indices
                session.next_instance[section.id] = (indices[-1] + 1) if indices else 0

        for key, value in draft.answers.items():
            try:
                _, field_def, _ = self._resolve(session, key)
            except UnknownAnswerKey:
                session.answers[key] = value
                continue
            if field_def.is_calculated:
                continue
            coerced = coerce_answer(field_def, key, value)
            if coerced is not None:
                session.answers[key] = coerced
        self._recompute(session)
        logger.info("Restored session %s for template %s", session.session_id, template.id)
        return session

    def submit(self, session: FormSession) -> Union[SubmissionRecord, ValidationFailure]:
        """Freeze the session if every visible required field is answered."""
        self._ensure_composing(session)
        missing = self.missing_required(session)
        if missing:
            logger.info("Session %s not submitted; %d required answer(s) missing", session.session_id, len(missing))
            return ValidationFailure(template_id=session.template_id, session_id=session.session_id, missing=missing)

        record = SubmissionRecord(
            template_id=session.template_id,
            session_id=session.session_id,
            answers=copy.deepcopy(session.answers),
            active_triggers=sorted(session.active_triggers),
            matched_rules=list(session.matched_rules),
            submitted_at=self._clock(),
        )
        session.state = SessionState.SUBMITTED
        session.submission = record
        logger.info("Submitted session %s (triggers: %s)", session.session_id, ", ".join(record.active_triggers) or "none")
        return record

    def submit_to(self, session: FormSession, gateway: "PersistenceGateway") -> Union[str, ValidationFailure]:
        """Submit and hand the record to the persistence gateway; returns the stored id."""
        result = self.submit(session)
        if isinstance(result, ValidationFailure):
            return result
        return gateway.create_submission(result)

    def save_draft(self, session: FormSession, gateway: "PersistenceGateway") -> str:
        self._ensure_composing(session)
        draft = DraftRecord(
            template_id=session.template_id,
            session_id=session.session_id,
            answers=copy.deepcopy(session.answers),
            active_triggers=sorted(session.active_triggers),
            instances={k: list(v) for k, v in session.instances.items()},
            saved_at=self._clock(),
        )
        return gateway.create_draft(draft)

    # Mutations

    def set_answer(self, session: FormSession, key: str, value: Any) -> FormView:
        self._ensure_composing(session)
        _, field_def, _ = self._resolve(session, key)
        if field_def.is_calculated:
            raise ReadOnlyField(key)
        coerced = coerce_answer(field_def, key, value)
        if coerced is None:
            session.answers.pop(key, None)
        else:
            session.answers[key] = coerced
        self._recompute(session)
        return self.view(session)

    def add_repeatable_instance(self, session: FormSession, section_id: str) -> int:
        """Open a new instance of a repeatable section and return its index."""
        self._ensure_composing(session)
        section = self._repeatable_section(session, section_id)
        index = self._allocate_instance(session, section)
        self._recompute(session)
        return index

    def remove_repeatable_instance(self, session: FormSession, section_id: str, index: int) -> None:
        """Retire one instance and every answer under it; other indices keep their keys."""
        self._ensure_composing(session)
        section = self._repeatable_section(session, section_id)
        live = session.instances[section.id]
        if index not in live:
            raise UnknownSection(section_id, f"no instance {index}")
        live.remove(index)
        for key in _instance_keys(session.compiled, section, index, session.answers):
            session.answers.pop(key, None)
        self._recompute(session)

    def toggle_section(self, session: FormSession, section_id: str) -> bool:
        if section_id not in session.compiled.sections:
            raise UnknownSection(section_id)
        if section_id in session.expanded:
            session.expanded.discard(section_id)
            return False
        session.expanded.add(section_id)
        return True

    def sign(self, session: FormSession, key: str, identity: Identity) -> FormView:
        """Stamp a signature for ``identity``; multi-signature fields keep one per signer."""
        self._ensure_composing(session)
        _, field_def, _ = self._resolve(session, key)
        record = SignatureRecord(signer_name=identity.display_name, timestamp=self._clock(), signer_id=identity.user_id)
        if field_def.type == FieldType.SIGNATURE:
            session.answers[key] = record
        elif field_def.type == FieldType.MULTI_SIGNATURE:
            existing: List[SignatureRecord] = list(session.answers.get(key) or [])
            already = identity.user_id is not None and any(s.signer_id == identity.user_id for s in existing)
            if not already:
                existing.append(record)
            session.answers[key] = existing
        else:
            raise InvalidAnswer(key, f"{field_def.type.value} fields cannot be signed")
        self._recompute(session)
        return self.view(session)

    def attach_file(
        self,
        session: FormSession,
        key: str,
        upload: "AttachmentUpload",
        gateway: "AttachmentGateway",
    ) -> FileReference:
        if session.is_submitted:
            raise AttachmentNotAllowed(key, "the form has already been submitted")
        if not session.session_id:
            raise AttachmentNotAllowed(key, "the session has no identifier yet")
        _, field_def, _ = self._resolve(session, key)
        if field_def.type != FieldType.FILE_REFERENCE:
            raise AttachmentNotAllowed(key, f"{field_def.type.value} fields do not take files")

        reference = gateway.upload(session.session_id, field_def.id, upload)
        if field_def.multiple:
            session.answers[key] = list(session.answers.get(key) or []) + [reference]
        else:
            session.answers[key] = reference
        self._recompute(session)
        return reference

    def detach_file(self, session: FormSession, key: str, path: str, gateway: "AttachmentGateway") -> None:
        self._ensure_composing(session)
        _, field_def, _ = self._resolve(session, key)
        current = session.answers.get(key)
        files = current if isinstance(current, list) else ([current] if current is not None else [])
        if not any(isinstance(f, FileReference) and f.path == path for f in files):
            raise InvalidAnswer(key, f"no attached file at {path!r}")

        gateway.delete(path)
        remaining = [f for f in files if f.path != path]
        if field_def.multiple and remaining:
            session.answers[key] = remaining
        else:
            session.answers.pop(key, None)
        self._recompute(session)

    # Queries

    def missing_required(self, session: FormSession) -> List[str]:
        missing: List[str] = []
        for section, field_def, key, index in self._iter_fields(session):
            if not field_def.required or field_def.is_calculated:
                continue
            if not session.compiled.is_visible(section, field_def, session.answers, index):
                continue
            if is_empty(session.answers.get(key)):
                missing.append(key)
        return missing

    def view(self, session: FormSession) -> FormView:
        sections: Dict[str, SectionView] = {}
        for section in session.compiled.sections.values():
            sections[section.id] = SectionView(
                id=section.id,
                title=section.title,
                expanded=section.id in session.expanded,
                repeatable=section.repeatable,
                instances=list(session.instances.get(section.id, [])),
            )

        missing: List[str] = []
        for section, field_def, key, index in self._iter_fields(session):
            visible = session.compiled.is_visible(section, field_def, session.answers, index)
            value = session.answers.get(key)
            if visible and field_def.required and not field_def.is_calculated and is_empty(value):
                missing.append(key)
            sections[section.id].fields.append(
                FieldView(
                    key=key,
                    field_id=field_def.id,
                    type=field_def.type,
                    label=field_def.label,
                    required=field_def.required,
                    visible=visible,
                    value=value,
                    instance=index,
                    trigger_tag=field_def.trigger_tag,
                )
            )

        return FormView(
            session_id=session.session_id,
            template_id=session.template_id,
            state=session.state,
            sections=list(sections.values()),
            active_triggers=sorted(session.active_triggers),
            notifications=describe_triggers(session.active_triggers, session.compiled.notifications),
            missing_required=missing,
        )

    # Internals

    def _new_session(self, template: FormTemplate, session_id: str) -> FormSession:
        compiled = compile_template(template, self._config, rule_sets=self._rule_sets)
        session = FormSession(
            session_id=session_id,
            compiled=compiled,
            aggregator=TriggerAggregator(compiled.rules),
        )
        if self._config.expand_first_section and template.sections:
            session.expanded.add(template.sections[0].id)
        return session

    def _ensure_composing(self, session: FormSession) -> None:
        if session.is_submitted:
            raise SessionClosed(session.session_id)

    def _recompute(self, session: FormSession) -> None:
        recompute_all(session.compiled, session.answers, session.instances)
        if session.template.has_trigger_evaluation:
            report = session.aggregator.run(session.answers)
            session.active_triggers = report.active
            session.matched_rules = report.matched_rule_ids

    def _repeatable_section(self, session: FormSession, section_id: str) -> SectionDefinition:
        section = session.compiled.sections.get(section_id)
        if section is None:
            raise UnknownSection(section_id)
        if not section.repeatable:
            raise UnknownSection(section_id, "section is not repeatable")
        return section

    def _allocate_instance(self, session: FormSession, section: SectionDefinition) -> int:
        # Indices are never reused, so a retired instance's keys cannot come back.
        index = session.next_instance.get(section.id, 0)
        session.next_instance[section.id] = index + 1
        session.instances.setdefault(section.id, []).append(index)
        self._seed_defaults(session, section, index)
        return index

    def _seed_defaults(self, session: FormSession, section: SectionDefinition, index: Optional[int]) -> None:
        now = self._clock()
        for f in section.fields:
            key = f.id if index is None else answer_key(section.id, index, f.id)
            if key in session.answers:
                continue
            if f.default is not None:
                session.answers[key] = _default_for(f, now)
            elif f.default_value is not None and not f.is_calculated:
                session.answers[key] = coerce_answer(f, key, f.default_value)

    def _resolve(self, session: FormSession, key: str) -> Tuple[SectionDefinition, FieldDefinition, Optional[int]]:
        compiled = session.compiled
        if key in compiled.top_level_fields:
            field_def = compiled.top_level_fields[key]
            for section in compiled.sections.values():
                if not section.repeatable and field_def in section.fields:
                    return section, field_def, None
        for section in compiled.sections.values():
            if not section.repeatable or not key.startswith(f"{section.id}_"):
                continue
            index_text, _, field_id = key[len(section.id) + 1 :].partition("_")
            if not index_text.isdigit() or int(index_text) not in session.instances.get(section.id, []):
                continue
            for f in section.fields:
                if f.id == field_id:
                    return section, f, int(index_text)
        raise UnknownAnswerKey(key)

    def _iter_fields(self, session: FormSession):
        for section in session.compiled.sections.values():
            if section.repeatable:
                for index in session.instances.get(section.id, []):
                    for f in section.fields:
                        yield section, f, answer_key(section.id, index, f.id), index
            else:
                for f in section.fields:
                    yield section, f, f.id, None


def _default_for(f: FieldDefinition, now: datetime) -> str:
    if f.type == FieldType.TIME:
        return now.strftime("%H:%M")
    if f.type == FieldType.DATETIME:
        return now.isoformat(timespec="minutes")
    if f.default == DefaultKind.NOW and f.type != FieldType.DATE:
        return now.isoformat(timespec="minutes")
    return now.date().isoformat()


def _instance_keys(
    compiled: CompiledTemplate, section: SectionDefinition, index: int, answers: Dict[str, Any]
) -> List[str]:
    """Every stored key under ``{section}_{index}_``, declared field or not.

    Top-level ids and keys owned by a repeatable section with a longer id
    (``hazards_1`` instance keys look like ``hazards_1_0_x``) are left alone.
    """
    prefix = f"{section.id}_{index}_"
    longer = [
        re.compile(rf"^{re.escape(other.id)}_\d+_")
        for other in compiled.sections.values()
        if other.repeatable and other.id != section.id and other.id.startswith(f"{section.id}_")
    ]
    keys = {answer_key(section.id, index, f.id) for f in section.fields}
    for key in answers:
        if not key.startswith(prefix) or key in compiled.top_level_fields:
            continue
        if any(p.match(key) for p in longer):
            continue
        keys.add(key)
    return sorted(keys)


def _indices_in_keys(section: SectionDefinition, answers: Dict[str, Any]) -> List[int]:
    field_ids = "|".join(re.escape(f.id) for f in section.fields)
    if not field_ids:
        return []
    pattern = re.compile(rf"^{re.escape(section.id)}_(\d+)_(?:{field_ids})$")
    found = set()
    for key in answers:
        match = pattern.match(key)
        if match:
            found.add(int(match.group(1)))
    return sorted(found)


__all__ = ["FormInterpreter", "FormSession"]
