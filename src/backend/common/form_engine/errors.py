from __future__ import annotations

from typing import List


class FormEngineError(Exception):
    """Base class for every error raised by the form engine."""


class MalformedTemplate(FormEngineError):
    def __init__(self, template_id: str, problems: List[str]):
        super().__init__(f"Template '{template_id}' is malformed: " + "; ".join(problems))
        self.template_id = template_id
        self.problems = list(problems)


class UnparsableCondition(FormEngineError):
    def __init__(self, source: str, reason: str = "unrecognized expression"):
        super().__init__(f"Cannot parse condition {source!r}: {reason}")
        self.source = source
        self.reason = reason


class SessionClosed(FormEngineError):
    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} has been submitted and can no longer change.")
        self.session_id = session_id


class UnknownAnswerKey(FormEngineError, KeyError):
    def __init__(self, key: str):
        super().__init__(f"No field is addressed by answer key '{key}'.")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class UnknownSection(FormEngineError, KeyError):
    def __init__(self, section_id: str, reason: str = "no such section"):
        super().__init__(f"Section '{section_id}': {reason}.")
        self.section_id = section_id

    def __str__(self) -> str:
        return self.args[0]


class ReadOnlyField(FormEngineError):
    def __init__(self, key: str):
        super().__init__(f"Field '{key}' is calculated and cannot be answered directly.")
        self.key = key


class InvalidAnswer(FormEngineError, ValueError):
    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid answer for '{key}': {reason}")
        self.key = key
        self.reason = reason


class AttachmentNotAllowed(FormEngineError):
    def __init__(self, key: str, reason: str):
        super().__init__(f"Cannot attach to '{key}': {reason}")
        self.key = key
        self.reason = reason
