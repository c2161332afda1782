"""Validation for intake payloads.

Two layers live in this module:

- ``ValidationEngine`` validates a mapping against a JSON Schema with the
  jsonschema library and translates its errors into ``FieldError`` objects.
  The submission endpoint validates incoming payloads with it, and the
  wizard uses it for per-field format rules.
- The required-field rule: a fixed map of required field to owning section
  (``REQUIRED_FIELDS``). A field is missing when its value is empty or only
  whitespace. ``missing_fields`` and ``group_by_section`` implement the rule
  the wizard applies before it lets a submission leave.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import jsonschema
from dateutil.parser import isoparse
from email_validator import EmailNotValidError, validate_email
from jsonschema import Draft7Validator, FormatChecker

from clientintake.errors import FieldError
from clientintake.schema import DATE_PATTERN, FIELDS_BY_NAME, REQUIRED_FIELDS
from clientintake.types import FieldErrorCode, Section

# Format checks used by every engine. "email" and "date" replace the
# permissive jsonschema defaults.
FORMAT_CHECKER = FormatChecker()


@FORMAT_CHECKER.checks("email", raises=EmailNotValidError)
def is_email(instance: Any) -> bool:
    """A single mailbox address: no lists, display names or line breaks."""
    if not isinstance(instance, str):
        return True
    validate_email(instance, check_deliverability=False)
    return True


@FORMAT_CHECKER.checks("date", raises=ValueError)
def is_date(instance: Any) -> bool:
    """A calendar date written as YYYY-MM-DD."""
    if not isinstance(instance, str):
        return True
    if not re.fullmatch(DATE_PATTERN, instance):
        return False
    isoparse(instance)
    return True


def _label(path: str) -> str:
    spec = FIELDS_BY_NAME.get(path)
    return spec.label if spec else path


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation run.

    Attributes:
        is_valid: True when no rule failed
        errors: One FieldError per failed rule, in schema order
        missing_fields: Paths of required fields that were absent or blank
        invalid_fields: Paths that failed any other rule, without repeats

    Examples:
        >>> engine = ValidationEngine({'type': 'object', 'required': ['industry']})
        >>> result = engine.validate({'industry': 'Retail'})
        >>> result.is_valid, result.errors
        (True, [])
    """
    is_valid: bool
    errors: List[FieldError]
    missing_fields: Optional[List[str]] = None
    invalid_fields: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "isValid": self.is_valid,
            "errors": [error.to_dict() for error in self.errors],
        }
        if self.missing_fields is not None:
            data["missingFields"] = self.missing_fields
        if self.invalid_fields is not None:
            data["invalidFields"] = self.invalid_fields
        return data


class ValidationEngine:
    """Checks intake mappings against a JSON Schema.

    A Draft 7 jsonschema validator with format checking does the work;
    each failure is reported as a ``FieldError`` keyed by the field's wire
    name and worded with the field's label.

    Examples:
        >>> engine = ValidationEngine({
        ...     'type': 'object',
        ...     'properties': {'contactEmail': {'type': 'string', 'format': 'email'}},
        ... })
        >>> engine.validate({'contactEmail': 'jo@acmebakery.com'}).is_valid
        True
        >>> engine.validate({'contactEmail': 'nope'}).invalid_fields
        ['contactEmail']
    """

    def __init__(self, schema: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.SchemaError: If ``schema`` is not a valid Draft 7 schema
        """
        Draft7Validator.check_schema(schema)
        self.schema = schema
        self.validator = Draft7Validator(schema, format_checker=FORMAT_CHECKER)
        self._positions = {name: i for i, name in enumerate(schema.get("properties", {}))}

    def validate(self, data: Any) -> ValidationResult:
        """Validate ``data``; errors are ordered by field position in the schema."""
        raw_errors = sorted(self.validator.iter_errors(data), key=self._position)
        errors = [self._translate_error(error) for error in raw_errors]

        missing = [e.path for e in errors if e.code == FieldErrorCode.REQUIRED]
        invalid = list(dict.fromkeys(
            e.path for e in errors if e.code != FieldErrorCode.REQUIRED
        ))
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            missing_fields=missing,
            invalid_fields=invalid,
        )

    def _position(self, error: jsonschema.ValidationError) -> int:
        return self._positions.get(self._field_path(error), len(self._positions))

    @staticmethod
    def _field_path(error: jsonschema.ValidationError) -> str:
        if error.validator == "required":
            # message reads "'contactEmail' is a required property"
            return error.message.split("'")[1] if "'" in error.message else ""
        # Items of multi-choice fields report against the field itself
        return str(error.path[0]) if error.path else ""

    def _translate_error(self, error: jsonschema.ValidationError) -> FieldError:
        """Turn one jsonschema error into a FieldError.

        required, and a blank value failing a pattern -> REQUIRED
        type -> INVALID_TYPE
        format, pattern -> INVALID_FORMAT
        enum -> INVALID_VALUE
        minLength -> TOO_SHORT
        anything else -> CUSTOM
        """
        path = self._field_path(error)
        label = _label(path)
        rule, value, instance = error.validator, error.validator_value, error.instance

        if rule == "required" or (rule == "pattern" and is_blank(instance)):
            return FieldError(
                path=path,
                code=FieldErrorCode.REQUIRED,
                message=f"{label} is required.",
                expected="required field",
                received=None if rule == "required" else instance,
            )

        if rule == "type":
            wanted = " or ".join(value) if isinstance(value, list) else value
            received = type(instance).__name__
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_TYPE,
                message=f"{label} must be {wanted}, not {received}.",
                expected=value,
                received=received,
            )

        if rule in ("format", "pattern"):
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_FORMAT,
                message=(
                    f"{label} is not a valid {value}." if rule == "format"
                    else f"{label} is not in the expected format."
                ),
                expected=value if rule == "format" else f"pattern: {value}",
                received=instance,
            )

        if rule == "enum":
            # '' and None are accepted for optional choices but never offered
            allowed = [choice for choice in value if choice not in ("", None)]
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_VALUE,
                message=f"{label} must be one of: {', '.join(map(str, allowed))}.",
                expected=allowed,
                received=instance,
            )

        if rule == "minLength":
            length = len(instance) if instance else 0
            return FieldError(
                path=path,
                code=FieldErrorCode.TOO_SHORT,
                message=f"{label} must be at least {value} characters.",
                expected=f"minimum {value} characters",
                received=f"{length} characters",
            )

        return FieldError(
            path=path,
            code=FieldErrorCode.CUSTOM,
            message=f"{label}: {error.message}",
            expected=value,
            received=instance,
        )


def is_blank(value: Any) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_fields(values: Mapping[str, Any]) -> List[FieldError]:
    """Apply the required-field rule to a wizard value mapping."""
    return [
        FieldError(
            path=name,
            code=FieldErrorCode.REQUIRED,
            message=f"{_label(name)} is required.",
            expected="required field",
        )
        for name in REQUIRED_FIELDS
        if is_blank(values.get(name))
    ]


def section_of(name: str) -> Section:
    """Owning section of a field (or of a multi-choice item path)."""
    return FIELDS_BY_NAME[name.split(".")[0]].section


def group_by_section(errors: Iterable[FieldError]) -> Dict[Section, List[FieldError]]:
    """Group field errors by owning section, in section display order."""
    grouped: Dict[Section, List[FieldError]] = {}
    collected = list(errors)
    for section in Section.ordered():
        in_section = [e for e in collected if section_of(e.path) == section]
        if in_section:
            grouped[section] = in_section
    return grouped


__all__ = [
    "ValidationEngine",
    "ValidationResult",
    "group_by_section",
    "is_blank",
    "missing_fields",
    "section_of",
]
