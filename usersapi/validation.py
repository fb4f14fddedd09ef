"""Validation of incoming user payloads against :data:`USER_FIELDS`."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, EmailStr, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .messages import DEFAULT_LOCALE, field_label, translate
from .models import USER_FIELDS, FieldSpec

_STRING_ERRORS = {
    "missing": "required",
    "string_type": "string",
    "string_too_short": "min_length",
    "string_too_long": "max_length",
}

_NUMBER_ERRORS = {
    "missing": "required",
    "float_type": "number",
    "float_parsing": "number",
    "greater_than_equal": "min",
    "less_than_equal": "max",
}


def _field_definition(spec: FieldSpec) -> Tuple[Any, Any]:
    if spec.required:
        default: Dict[str, Any] = {"default": ...}
    elif spec.kind == "string_list":
        default = {"default_factory": list}
    else:
        default = {"default": spec.default}

    if spec.kind == "string":
        constraints: Dict[str, Any] = {}
        if spec.minimum is not None:
            constraints["min_length"] = int(spec.minimum)
        if spec.maximum is not None:
            constraints["max_length"] = int(spec.maximum)
        return str, Field(**default, **constraints)
    if spec.kind == "number":
        return float, Field(**default, ge=spec.minimum, le=spec.maximum)
    if spec.kind == "email":
        return EmailStr, Field(**default)
    if spec.kind == "string_list":
        return List[str], Field(**default)
    if spec.kind == "boolean":
        return bool, Field(**default)
    raise ValueError(f"Unsupported field kind '{spec.kind}' for {spec.name}")


def build_payload_model(fields: Iterable[FieldSpec], name: str = "UserPayload") -> Type[BaseModel]:
    """Compile field specs into a strict pydantic model that ignores unknown keys."""

    definitions = {spec.name: _field_definition(spec) for spec in fields}
    return create_model(  # type: ignore[call-overload]
        name,
        __config__=ConfigDict(strict=True, extra="ignore"),
        **definitions,
    )


UserPayload = build_payload_model(USER_FIELDS)
_SPECS_BY_NAME: Dict[str, FieldSpec] = {spec.name: spec for spec in USER_FIELDS}


def _format_limit(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _message_key(spec: FieldSpec, error: Mapping[str, Any]) -> Tuple[str, Optional[float]]:
    error_type = str(error.get("type", ""))
    nested = len(error.get("loc", ())) > 1

    if spec.kind == "string":
        key = _STRING_ERRORS.get(error_type, "invalid")
    elif spec.kind == "number":
        key = _NUMBER_ERRORS.get(error_type, "invalid")
    elif spec.kind == "email":
        key = _STRING_ERRORS.get(error_type) if error_type in {"missing", "string_type"} else "email"
    elif spec.kind == "string_list":
        key = "required" if error_type == "missing" else "array"
    elif spec.kind == "boolean":
        key = "required" if error_type == "missing" else "boolean"
    else:
        key = "invalid"

    if nested and spec.kind != "string_list":
        key = "invalid"

    if key in {"min_length", "min"}:
        return key, spec.minimum
    if key in {"max_length", "max"}:
        return key, spec.maximum
    return key, None


def collect_field_errors(exc: PydanticValidationError, locale: str = DEFAULT_LOCALE) -> List[Dict[str, str]]:
    """Translate pydantic errors into one ``{field, message}`` entry per field."""

    first_errors: Dict[str, Mapping[str, Any]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        if not loc:
            continue
        field = str(loc[0])
        first_errors.setdefault(field, error)

    results: List[Dict[str, str]] = []
    for spec in USER_FIELDS:
        error = first_errors.get(spec.name)
        if error is None:
            continue
        key, limit = _message_key(spec, error)
        message = translate(
            key,
            locale,
            label=field_label(spec.name, locale),
            limit=_format_limit(limit),
        )
        results.append({"field": spec.name, "message": message})
    return results


def _normalize_value(spec: FieldSpec, value: Any) -> Any:
    if spec.kind == "number" and isinstance(value, float) and value.is_integer():
        return int(value)
    if spec.kind == "string_list":
        return list(value)
    return value


def validate(candidate: Any, locale: str = DEFAULT_LOCALE) -> Dict[str, Any]:
    """Validate ``candidate`` and return the normalized user fields.

    Defaults are applied, unknown keys dropped and an absent optional field
    without a default is left out of the result. All violations are reported
    together through :class:`ValidationError`.
    """

    if not isinstance(candidate, Mapping):
        raise ValidationError(
            [{"field": "body", "message": translate("body", locale)}],
            translate("validation_failed", locale),
        )

    try:
        payload = UserPayload.model_validate(dict(candidate))
    except PydanticValidationError as exc:
        raise ValidationError(
            collect_field_errors(exc, locale),
            translate("validation_failed", locale),
        ) from exc

    values = payload.model_dump()
    normalized: Dict[str, Any] = {}
    for spec in USER_FIELDS:
        value = values.get(spec.name)
        if value is None and not spec.required and not spec.has_default:
            continue
        if spec.kind == "email":
            # EmailStr only checks the address; keep what the client sent.
            value = candidate[spec.name]
        normalized[spec.name] = _normalize_value(spec, value)
    return normalized


__all__ = ["UserPayload", "build_payload_model", "collect_field_errors", "validate"]
