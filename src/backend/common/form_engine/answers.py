"""Answer keys and per-field-type answer coercion."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from .errors import InvalidAnswer, ReadOnlyField
from .models import (
    FieldDefinition,
    FieldType,
    FileReference,
    GeoCoordinate,
    SignatureRecord,
    YesNoWithText,
)
from .template import resolve_options

Coercer = Callable[[FieldDefinition, str, Any], Any]


def answer_key(section_id: str, index: int, field_id: str) -> str:
    """Composite key of a field inside the index-th instance of a repeatable section."""
    return f"{section_id}_{index}_{field_id}"


def coerce_answer(field: FieldDefinition, key: str, value: Any) -> Any:
    """Normalize a raw answer for ``field``; ``None`` clears the answer."""
    if value is None:
        return None
    try:
        return _COERCERS[field.type](field, key, value)
    except ValidationError as exc:
        raise InvalidAnswer(key, str(exc.errors()[0].get("msg", exc))) from exc


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    if isinstance(value, YesNoWithText):
        return value.answer is None
    return False


def _text(field: FieldDefinition, key: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise InvalidAnswer(key, f"expected text, got {type(value).__name__}")


def _select(field: FieldDefinition, key: str, value: Any) -> str:
    text = _text(field, key, value)
    allowed = {option.value for option in resolve_options(field)}
    if allowed and text not in allowed:
        raise InvalidAnswer(key, f"{text!r} is not one of the field's options")
    return text


def _string_list(field: FieldDefinition, key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise InvalidAnswer(key, "expected a list of strings")
    return [_text(field, key, item) for item in value]


def _multiselect(field: FieldDefinition, key: str, value: Any) -> List[str]:
    items = _string_list(field, key, value)
    allowed = {option.value for option in resolve_options(field)}
    unknown = [item for item in items if allowed and item not in allowed]
    if unknown:
        raise InvalidAnswer(key, f"not among the field's options: {unknown}")
    return items


def _boolean(field: FieldDefinition, key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidAnswer(key, "expected true or false")


def _yesno_text(field: FieldDefinition, key: str, value: Any) -> YesNoWithText:
    if isinstance(value, YesNoWithText):
        return value
    if isinstance(value, (bool, str)):
        return YesNoWithText(answer=_boolean(field, key, value))
    return YesNoWithText.model_validate(value)


def _number(field: FieldDefinition, key: str, value: Any) -> Any:
    if isinstance(value, bool):
        raise InvalidAnswer(key, "expected a number")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            raise InvalidAnswer(key, f"{value!r} is not a number") from None
    raise InvalidAnswer(key, "expected a number")


def _date(field: FieldDefinition, key: str, value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(_text(field, key, value).strip()).isoformat()
    except ValueError:
        raise InvalidAnswer(key, f"{value!r} is not an ISO date") from None


def _time(field: FieldDefinition, key: str, value: Any) -> str:
    if isinstance(value, (time, datetime)):
        return value.strftime("%H:%M")
    text = _text(field, key, value).strip()
    try:
        time.fromisoformat(text)
    except ValueError:
        raise InvalidAnswer(key, f"{value!r} is not a time of day") from None
    return text


def _datetime(field: FieldDefinition, key: str, value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat(timespec="minutes")
    text = _text(field, key, value).strip()
    try:
        datetime.fromisoformat(text)
    except ValueError:
        raise InvalidAnswer(key, f"{value!r} is not an ISO date-time") from None
    return text


def _signature(field: FieldDefinition, key: str, value: Any) -> SignatureRecord:
    if isinstance(value, SignatureRecord):
        return value
    return SignatureRecord.model_validate(value)


def _signatures(field: FieldDefinition, key: str, value: Any) -> List[SignatureRecord]:
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [_signature(field, key, item) for item in value]


def _geocoordinate(field: FieldDefinition, key: str, value: Any) -> GeoCoordinate:
    if isinstance(value, GeoCoordinate):
        return value
    return GeoCoordinate.model_validate(value)


def _file_reference(field: FieldDefinition, key: str, value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        files = [item if isinstance(item, FileReference) else FileReference.model_validate(item) for item in value]
        if not field.multiple and len(files) > 1:
            raise InvalidAnswer(key, "field accepts a single file")
        return files if field.multiple else (files[0] if files else None)
    single = value if isinstance(value, FileReference) else FileReference.model_validate(value)
    return [single] if field.multiple else single


def _read_only(field: FieldDefinition, key: str, value: Any) -> Any:
    raise ReadOnlyField(key)


_COERCERS: Dict[FieldType, Coercer] = {
    FieldType.TEXT: _text,
    FieldType.TEXTAREA: _text,
    FieldType.SELECT: _select,
    FieldType.MULTISELECT: _multiselect,
    FieldType.YESNO: _boolean,
    FieldType.YESNO_TEXT: _yesno_text,
    FieldType.NUMBER: _number,
    FieldType.DATE: _date,
    FieldType.TIME: _time,
    FieldType.DATETIME: _datetime,
    FieldType.CHECKBOX: _boolean,
    FieldType.CHECKLIST: _string_list,
    FieldType.SIGNATURE: _signature,
    FieldType.MULTI_SIGNATURE: _signatures,
    FieldType.GEOCOORDINATE: _geocoordinate,
    FieldType.FILE_REFERENCE: _file_reference,
    FieldType.COMPUTED: _read_only,
    FieldType.RISK_MATRIX: _read_only,
    FieldType.REFERENCE_LOOKUP: _text,
    FieldType.REPEATABLE_TEXT: _string_list,
    FieldType.REPEATABLE_PERSON: _string_list,
}

_missing = set(FieldType) - set(_COERCERS)
if _missing:
    raise RuntimeError(f"No answer coercion for field types: {sorted(t.value for t in _missing)}")


__all__ = ["answer_key", "coerce_answer", "is_empty"]
