import logging
from typing import Any, Mapping, Union

from pydantic import ValidationError

from .contracts import ConditionalEffect, ConditionOperator, ConditionRule, FieldDefinition
from .formula import as_number

logger = logging.getLogger(__name__)


def is_empty_value(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and not value)


def stringify(value: Any) -> str:
    """Normalise a field value to the text used for comparison and substitution."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(item) for item in value)
    return str(value)


def evaluate_condition(
    rule: Union[ConditionRule, Mapping[str, Any]], values: Mapping[str, Any]
) -> bool:
    """Evaluate one ``(field, operator, value)`` rule; never raises."""

    if not isinstance(rule, ConditionRule):
        try:
            rule = ConditionRule.model_validate(rule)
        except ValidationError as exc:
            logger.warning(f"Ignoring malformed condition {rule!r}: {exc.error_count()} error(s)")
            return False

    field_value = (values or {}).get(rule.field)
    operator = rule.operator

    if operator == ConditionOperator.EQUALS.value:
        return stringify(field_value) == stringify(rule.value)
    if operator == ConditionOperator.NOT_EQUALS.value:
        return stringify(field_value) != stringify(rule.value)
    if operator == ConditionOperator.CONTAINS.value:
        return stringify(rule.value).lower() in stringify(field_value).lower()
    if operator in (ConditionOperator.GREATER_THAN.value, ConditionOperator.LESS_THAN.value):
        left, right = as_number(field_value), as_number(rule.value)
        if left is None or right is None:
            return False
        return left > right if operator == ConditionOperator.GREATER_THAN.value else left < right
    if operator == ConditionOperator.IS_EMPTY.value:
        return is_empty_value(field_value)
    if operator == ConditionOperator.IS_NOT_EMPTY.value:
        return not is_empty_value(field_value)

    logger.debug(f"Unknown condition operator {operator!r}")
    return False


def is_field_hidden(field: FieldDefinition, values: Mapping[str, Any]) -> bool:
    logic = field.conditional_logic
    if logic is None:
        return False
    matched = evaluate_condition(logic.rule, values)
    if logic.then == ConditionalEffect.HIDE:
        return matched
    if logic.then == ConditionalEffect.SHOW:
        return not matched
    return False


def is_field_required(field: FieldDefinition, values: Mapping[str, Any]) -> bool:
    if field.validation is not None and field.validation.required:
        return True
    logic = field.conditional_logic
    return (
        logic is not None
        and logic.then == ConditionalEffect.REQUIRE
        and evaluate_condition(logic.rule, values)
    )
