from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    YESNO = "yesno"
    YESNO_TEXT = "yesno_text"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    CHECKBOX = "checkbox"
    CHECKLIST = "checklist"
    SIGNATURE = "signature"
    MULTI_SIGNATURE = "multi_signature"
    GEOCOORDINATE = "geocoordinate"
    FILE_REFERENCE = "file_reference"
    COMPUTED = "computed"
    RISK_MATRIX = "risk_matrix"
    REFERENCE_LOOKUP = "reference_lookup"
    REPEATABLE_TEXT = "repeatable_text"
    REPEATABLE_PERSON = "repeatable_person"


CALCULATED_TYPES = frozenset({FieldType.COMPUTED, FieldType.RISK_MATRIX})


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    # Insufficient data; never to be read as LOW.
    UNKNOWN = "unknown"


class DefaultKind(str, Enum):
    TODAY = "today"
    NOW = "now"


class SessionState(str, Enum):
    COMPOSING = "composing"
    SUBMITTED = "submitted"


class OptionItem(BaseModel):
    value: str
    label: str = ""
    description: str = ""

    model_config = ConfigDict(frozen=True)


class InstanceCount(BaseModel):
    """Number of live instances of a repeatable section."""

    kind: Literal["instance_count"] = "instance_count"
    section: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class Duration(BaseModel):
    """Minutes between two HH:MM answers in the same scope."""

    kind: Literal["duration"] = "duration"
    start: str
    end: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class SumOf(BaseModel):
    """Numeric sum of one field across every live instance of a repeatable section."""

    kind: Literal["sum"] = "sum"
    section: str
    field: str

    model_config = ConfigDict(frozen=True, extra="forbid")


Calculation = Annotated[Union[InstanceCount, Duration, SumOf], Field(discriminator="kind")]


class FieldDefinition(BaseModel):
    id: str
    type: FieldType
    label: str = ""
    required: bool = False
    show_if: Optional[str] = None
    # Literal option list, or the name of a shared enumeration (see options.py).
    options: Optional[Union[str, List[OptionItem]]] = None
    # UI hint only; trigger evaluation never reads it.
    trigger_tag: Optional[str] = None
    help_text: str = ""
    default: Optional[DefaultKind] = None
    default_value: Any = None
    multiple: bool = False
    reference: Optional[str] = None
    severity_field: Optional[str] = None
    probability_field: Optional[str] = None
    calculation: Optional[Calculation] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("id")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        if not value or not value.replace("_", "a").isalnum():
            raise ValueError(f"Field id must be a non-empty identifier: {value!r}")
        return value

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_options(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"value": item, "label": item} if isinstance(item, str) else item for item in value]
        return value

    @model_validator(mode="after")
    def _validate_shape(self) -> "FieldDefinition":
        if self.type == FieldType.COMPUTED and self.calculation is None:
            raise ValueError(f"Computed field '{self.id}' must declare a calculation")
        if self.type != FieldType.COMPUTED and self.calculation is not None:
            raise ValueError(f"Only computed fields may declare a calculation: '{self.id}'")
        if self.type == FieldType.REFERENCE_LOOKUP and not self.reference:
            raise ValueError(f"Reference lookup field '{self.id}' must name a reference kind")
        return self

    @property
    def is_calculated(self) -> bool:
        return self.type in CALCULATED_TYPES


class SectionDefinition(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    fields: List[FieldDefinition] = Field(default_factory=list)
    repeatable: bool = False
    repeat_label: str = ""
    initial_instances: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class TriggerRule(BaseModel):
    rule_id: str = ""
    code: str
    predicate: Optional[str] = None
    always_active: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _validate_predicate(self) -> "TriggerRule":
        if not self.always_active and not (self.predicate or "").strip():
            raise ValueError(f"Trigger rule for {self.code} needs a predicate or always_active")
        return self


class NotificationDefinition(BaseModel):
    code: str
    label: str = ""
    instructions: str = ""
    phone: str = ""
    alt_phone: str = ""

    model_config = ConfigDict(frozen=True)


class FormTemplate(BaseModel):
    id: str
    name: str = ""
    category: str = ""
    description: str = ""
    version: str = "1.0"
    sections: List[SectionDefinition] = Field(default_factory=list)
    has_trigger_evaluation: bool = False
    trigger_rule_set: Optional[str] = None
    trigger_rules: List[TriggerRule] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")


class SignatureRecord(BaseModel):
    signer_name: str
    timestamp: datetime
    signer_id: Optional[str] = None


class FileReference(BaseModel):
    url: str
    path: str
    name: str
    size: int = 0
    type: str = ""


class GeoCoordinate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class YesNoWithText(BaseModel):
    answer: Optional[bool] = None
    text: str = ""


class ReferenceItem(BaseModel):
    id: str
    label: str
    detail: str = ""

    model_config = ConfigDict(frozen=True)


class Identity(BaseModel):
    display_name: str
    user_id: Optional[str] = None


class SubmissionRecord(BaseModel):
    template_id: str
    session_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    active_triggers: List[str] = Field(default_factory=list)
    # Rule ids (or codes) that fired, in rule-table order.
    matched_rules: List[str] = Field(default_factory=list)
    submitted_at: datetime


class DraftRecord(BaseModel):
    template_id: str
    session_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    active_triggers: List[str] = Field(default_factory=list)
    # Live instance indices per repeatable section; rebuilt from the answer keys when empty.
    instances: Dict[str, List[int]] = Field(default_factory=dict)
    saved_at: datetime


class ValidationFailure(BaseModel):
    template_id: str
    session_id: str
    missing: List[str] = Field(default_factory=list)


class SubmissionFilter(BaseModel):
    template_id: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)


class FieldView(BaseModel):
    key: str
    field_id: str
    type: FieldType
    label: str = ""
    required: bool = False
    visible: bool = True
    value: Any = None
    instance: Optional[int] = None
    trigger_tag: Optional[str] = None


class SectionView(BaseModel):
    id: str
    title: str = ""
    expanded: bool = False
    repeatable: bool = False
    instances: List[int] = Field(default_factory=list)
    fields: List[FieldView] = Field(default_factory=list)


class FormView(BaseModel):
    session_id: str
    template_id: str
    state: SessionState
    sections: List[SectionView] = Field(default_factory=list)
    active_triggers: List[str] = Field(default_factory=list)
    notifications: List[NotificationDefinition] = Field(default_factory=list)
    missing_required: List[str] = Field(default_factory=list)

    def field(self, key: str) -> Optional[FieldView]:
        for section in self.sections:
            for item in section.fields:
                if item.key == key:
                    return item
        return None

    def visible_keys(self) -> List[str]:
        return [item.key for section in self.sections for item in section.fields if item.visible]
