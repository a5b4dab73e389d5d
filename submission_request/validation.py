"""JSON Schema validity signal for questionnaire sections.

The completion evaluator only needs one boolean per section: "do all required
fields currently satisfy their constraints". This module produces that
boolean from a section's JSON Schema, together with structured field errors
a form can display next to its inputs.

Sections without a schema have no required fields and are always valid.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import jsonschema
from jsonschema import Draft7Validator, FormatChecker

from submission_request.errors import FieldError
from submission_request.sections import SectionRegistry
from submission_request.types import FieldErrorCode


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a section payload against its schema.

    Attributes:
        is_valid: Whether the payload passed all validation checks
        errors: List of field-level validation errors (empty if valid)
        missing_fields: Field paths that are required but missing
        invalid_fields: Field paths that are present but invalid

    Examples:
        >>> schema = {'type': 'object', 'properties': {'name': {'type': 'string'}}, 'required': ['name']}
        >>> SectionValidator(schema).validate({'name': 'test'}).is_valid
        True
    """
    is_valid: bool
    errors: List[FieldError] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)
    invalid_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "missingFields": self.missing_fields,
            "invalidFields": self.invalid_fields,
        }


class SectionValidator:
    """Validates one section's payload against a Draft 7 JSON Schema.

    Attributes:
        schema: The JSON Schema definition to validate against
        validator: The underlying jsonschema validator instance

    Examples:
        >>> schema = {
        ...     'type': 'object',
        ...     'properties': {'pi': {'type': 'object', 'required': ['email']}},
        ...     'required': ['pi']
        ... }
        >>> result = SectionValidator(schema).validate({'pi': {}})
        >>> result.missing_fields
        ['pi.email']
    """

    def __init__(self, schema: Optional[Dict[str, Any]]) -> None:
        """Initialize the validator.

        Args:
            schema: A JSON Schema definition, or None for a section without
                required fields

        Raises:
            jsonschema.SchemaError: If the provided schema is invalid
        """
        self.schema = schema
        if schema is None:
            self.validator = None
        else:
            Draft7Validator.check_schema(schema)
            self.validator = Draft7Validator(schema, format_checker=FormatChecker())

    def validate(self, payload: Mapping[str, Any]) -> ValidationResult:
        """Validate a section payload."""
        if self.validator is None:
            return ValidationResult(is_valid=True)

        errors = sorted(self.validator.iter_errors(dict(payload)), key=lambda e: [str(p) for p in e.path])
        if not errors:
            return ValidationResult(is_valid=True)

        field_errors: List[FieldError] = []
        missing_fields: List[str] = []
        invalid_fields: List[str] = []

        for error in errors:
            field_error = self._translate_error(error)
            field_errors.append(field_error)

            if field_error.code == FieldErrorCode.REQUIRED:
                missing_fields.append(field_error.path)
            else:
                invalid_fields.append(field_error.path)

        return ValidationResult(
            is_valid=False,
            errors=field_errors,
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        )

    def _translate_error(self, error: jsonschema.ValidationError) -> FieldError:
        """Translate a jsonschema ValidationError into a FieldError.

        Error mapping:
            - 'required' property errors -> REQUIRED
            - 'type' errors -> INVALID_TYPE
            - 'format' and 'pattern' errors -> INVALID_FORMAT
            - 'enum' / 'const' / numeric bounds -> INVALID_VALUE
            - 'minLength' / 'minItems' -> TOO_SHORT
            - 'maxLength' / 'maxItems' -> TOO_LONG
            - anything else -> CUSTOM
        """
        path = ".".join(str(p) for p in error.path)

        if error.validator == "required":
            missing_prop = error.message.split("'")[1] if "'" in error.message else "field"
            full_path = f"{path}.{missing_prop}" if path else missing_prop
            return FieldError(
                path=full_path,
                code=FieldErrorCode.REQUIRED,
                message=f"Field '{full_path}' is required but was not provided",
                expected="required field",
            )

        if error.validator == "type":
            received_type = type(error.instance).__name__
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_TYPE,
                message=f"Field '{path}' has invalid type. Expected {error.validator_value}, got {received_type}",
                expected=error.validator_value,
                received=received_type,
            )

        if error.validator in ("format", "pattern"):
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_FORMAT,
                message=f"Field '{path}' has invalid format. Expected: {error.validator_value}",
                expected=error.validator_value,
                received=error.instance,
            )

        if error.validator in ("enum", "const", "minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum"):
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_VALUE,
                message=f"Field '{path}' violates {error.validator} constraint: {error.validator_value}",
                expected=error.validator_value,
                received=error.instance,
            )

        if error.validator in ("minLength", "minItems"):
            actual = len(error.instance) if error.instance else 0
            return FieldError(
                path=path,
                code=FieldErrorCode.TOO_SHORT,
                message=f"Field '{path}' is too short. Minimum: {error.validator_value}, got: {actual}",
                expected=f"minimum {error.validator_value}",
                received=actual,
            )

        if error.validator in ("maxLength", "maxItems"):
            actual = len(error.instance) if error.instance else 0
            return FieldError(
                path=path,
                code=FieldErrorCode.TOO_LONG,
                message=f"Field '{path}' is too long. Maximum: {error.validator_value}, got: {actual}",
                expected=f"maximum {error.validator_value}",
                received=actual,
            )

        return FieldError(
            path=path,
            code=FieldErrorCode.CUSTOM,
            message=f"Field '{path}' validation failed: {error.message}",
            expected=error.validator_value,
            received=error.instance,
        )


def validate_section(
    registry: SectionRegistry,
    section_id: str,
    payload: Mapping[str, Any],
) -> ValidationResult:
    """Validate ``payload`` against the schema of ``section_id``.

    Raises:
        KeyError: If the section is unknown
    """
    definition = registry.get(section_id)
    return SectionValidator(definition.schema).validate(payload)


__all__ = [
    "ValidationResult",
    "SectionValidator",
    "validate_section",
]
