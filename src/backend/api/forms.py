from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from common.form_engine import (
    FormEngineError,
    FormInterpreter,
    FormSession,
    MalformedTemplate,
    UnknownAnswerKey,
    UnknownSection,
    get_builtin_template,
    get_engine_config,
    list_builtin_templates,
)
from common.form_engine.models import ValidationFailure
from gateways.config import get_persistence_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["forms"])

_INTERPRETER = FormInterpreter(get_engine_config())
_PERSISTENCE = get_persistence_gateway()
_SESSION_TTL_SECONDS = 8 * 60 * 60
_SESSIONS: dict[str, dict[str, Any]] = {}


class StartSessionRequest(BaseModel):
    template_id: str


class AnswerRequest(BaseModel):
    value: Any = None


def _expired(record: dict[str, Any], now: float) -> bool:
    return now - record["created_at"] > _SESSION_TTL_SECONDS


def _drop_expired() -> None:
    now = time.time()
    for session_id in [sid for sid, record in _SESSIONS.items() if _expired(record, now)]:
        _SESSIONS.pop(session_id, None)
        logger.info("Expired session %s", session_id)


def _get_session(session_id: str) -> FormSession:
    record = _SESSIONS.get(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    if _expired(record, time.time()):
        _SESSIONS.pop(session_id, None)
        raise HTTPException(status_code=404, detail=f"Session expired: {session_id}")
    return record["session"]


def _http_error(exc: FormEngineError) -> HTTPException:
    if isinstance(exc, (UnknownAnswerKey, UnknownSection)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, MalformedTemplate):
        return HTTPException(status_code=422, detail={"message": str(exc), "problems": exc.problems})
    return HTTPException(status_code=400, detail=str(exc))


@router.get("/templates")
def list_templates():
    return [
        {
            "id": t.id,
            "name": t.name,
            "category": t.category,
            "description": t.description,
            "version": t.version,
        }
        for t in list_builtin_templates()
    ]


@router.post("/sessions", status_code=201)
def start_session(payload: StartSessionRequest):
    try:
        template = get_builtin_template(payload.template_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown template: {payload.template_id}")
    try:
        session = _INTERPRETER.start_session(template)
    except FormEngineError as exc:
        raise _http_error(exc) from exc
    _drop_expired()
    _SESSIONS[session.session_id] = {"created_at": time.time(), "session": session}
    return _INTERPRETER.view(session).model_dump(mode="json")


@router.get("/sessions/{session_id}")
def get_session(session_id: str):
    return _INTERPRETER.view(_get_session(session_id)).model_dump(mode="json")


@router.put("/sessions/{session_id}/answers/{key}")
def set_answer(session_id: str, key: str, payload: AnswerRequest):
    session = _get_session(session_id)
    try:
        view = _INTERPRETER.set_answer(session, key, payload.value)
    except FormEngineError as exc:
        raise _http_error(exc) from exc
    return view.model_dump(mode="json")


@router.post("/sessions/{session_id}/sections/{section_id}/instances", status_code=201)
def add_instance(session_id: str, section_id: str):
    session = _get_session(session_id)
    try:
        index = _INTERPRETER.add_repeatable_instance(session, section_id)
    except FormEngineError as exc:
        raise _http_error(exc) from exc
    return {"index": index, "view": _INTERPRETER.view(session).model_dump(mode="json")}


@router.delete("/sessions/{session_id}/sections/{section_id}/instances/{index}")
def remove_instance(session_id: str, section_id: str, index: int):
    session = _get_session(session_id)
    try:
        _INTERPRETER.remove_repeatable_instance(session, section_id, index)
    except FormEngineError as exc:
        raise _http_error(exc) from exc
    return _INTERPRETER.view(session).model_dump(mode="json")


@router.post("/sessions/{session_id}/sections/{section_id}/toggle")
def toggle_section(session_id: str, section_id: str):
    session = _get_session(session_id)
    try:
        expanded = _INTERPRETER.toggle_section(session, section_id)
    except FormEngineError as exc:
        raise _http_error(exc) from exc
    return {"section_id": section_id, "expanded": expanded}


@router.post("/sessions/{session_id}/submit")
def submit_session(session_id: str):
    session = _get_session(session_id)
    try:
        result = _INTERPRETER.submit_to(session, _PERSISTENCE)
    except FormEngineError as exc:
        raise _http_error(exc) from exc
    if isinstance(result, ValidationFailure):
        raise HTTPException(status_code=422, detail={"message": "Required answers missing.", "missing": result.missing})

    _SESSIONS.pop(session_id, None)
    logger.info("Stored submission %s for session %s", result, session_id)
    return {
        "status": "submitted",
        "submission_id": result,
        "record": session.submission.model_dump(mode="json") if session.submission else None,
    }
