import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .conditions import is_empty_value, is_field_hidden, is_field_required, stringify
from .contracts import FieldDefinition, FieldType, coerce_fields
from .formula import as_number

logger = logging.getLogger(__name__)


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _check_field(field: FieldDefinition, values: Mapping[str, Any]) -> Optional[str]:
    label = field.display_label
    value = values.get(field.field_key)
    validation = field.validation

    if is_empty_value(value):
        return f"{label} is required" if is_field_required(field, values) else None
    if validation is None:
        return None

    if field.field_type == FieldType.NUMBER:
        number = as_number(value)
        if number is None:
            return f"{label} must be a number"
        if validation.min is not None and number < validation.min:
            return f"{label} must be at least {_format_bound(validation.min)}"
        if validation.max is not None and number > validation.max:
            return f"{label} must be at most {_format_bound(validation.max)}"

    if validation.pattern and not isinstance(value, (list, tuple)):
        try:
            matched = re.search(validation.pattern, stringify(value))
        except re.error as exc:
            logger.warning(f"Invalid pattern for field {field.field_key!r}: {exc}")
            return None
        if not matched:
            return validation.message or f"{label} has invalid format"
    return None


def validate_field_values(
    fields: Iterable[Union[FieldDefinition, Mapping[str, Any]]],
    values: Mapping[str, Any],
) -> Dict[str, str]:
    """Check ``values`` against each field's constraints.

    Only failing fields appear in the result, one message per field (the
    first rule it breaks). Fields hidden by their conditional logic are never
    reported.
    """

    values = values or {}
    errors: Dict[str, str] = {}
    for field in coerce_fields(fields):
        if is_field_hidden(field, values):
            continue
        message = _check_field(field, values)
        if message:
            errors[field.field_key] = message
    return errors
