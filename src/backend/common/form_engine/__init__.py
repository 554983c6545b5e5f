"""Dynamic form interpreter for field-operations records.

This package holds only domain logic:
- Templates, answers, visibility conditions, risk classification and
  notification triggers.
- Persistence, attachments and identity live behind the gateway protocols.
"""

from .config import EngineConfig, UnparsableConditionPolicy, get_engine_config
from .errors import (
    AttachmentNotAllowed,
    FormEngineError,
    InvalidAnswer,
    MalformedTemplate,
    ReadOnlyField,
    SessionClosed,
    UnknownAnswerKey,
    UnknownSection,
    UnparsableCondition,
)
from .models import (
    DraftRecord,
    FieldDefinition,
    FieldType,
    FormTemplate,
    FormView,
    Identity,
    RiskLevel,
    SectionDefinition,
    SubmissionRecord,
    TriggerRule,
    ValidationFailure,
)
from .conditions import evaluate, evaluate_source, parse
from .risk import classify
from .triggers import TriggerAggregator, compute_triggers, describe_triggers
from .compiler import compile_template
from .session import FormInterpreter, FormSession
from .template import get_builtin_template, list_builtin_templates, load_template

# Import built-in rule sets so they self-register with the global registry.
from . import rules as _builtin_rules  # noqa: F401
from .rules import RPAS_INCIDENT

__all__ = [
    "AttachmentNotAllowed",
    "DraftRecord",
    "EngineConfig",
    "FieldDefinition",
    "FieldType",
    "FormEngineError",
    "FormInterpreter",
    "FormSession",
    "FormTemplate",
    "FormView",
    "Identity",
    "InvalidAnswer",
    "MalformedTemplate",
    "RPAS_INCIDENT",
    "ReadOnlyField",
    "RiskLevel",
    "SectionDefinition",
    "SessionClosed",
    "SubmissionRecord",
    "TriggerAggregator",
    "TriggerRule",
    "UnknownAnswerKey",
    "UnknownSection",
    "UnparsableCondition",
    "UnparsableConditionPolicy",
    "ValidationFailure",
    "classify",
    "compile_template",
    "compute_triggers",
    "describe_triggers",
    "evaluate",
    "evaluate_source",
    "get_builtin_template",
    "get_engine_config",
    "list_builtin_templates",
    "load_template",
    "parse",
]
