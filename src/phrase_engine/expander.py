"""Template expansion: placeholders, patient data, formulas and conditional fields."""

import logging
import re
from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .conditions import evaluate_condition, is_empty_value, is_field_hidden, stringify
from .contracts import (
    ClinicalPhrase,
    ConditionalEffect,
    ExpansionResult,
    FieldDefinition,
    FieldType,
    coerce_fields,
    coerce_phrase,
)
from .formula import as_number, calculate_formula
from .patient_data import get_patient_data_value
from .scanner import extract_field_keys, fill_placeholders
from .sentences import generate_sentence_from_selections

logger = logging.getLogger(__name__)

EXTRA_BLANK_LINES = re.compile(r"\n{3,}")


@dataclass
class _Expansion:
    values: Dict[str, Any]
    patient: Any
    today: Optional[date]
    calculated_values: Dict[str, float] = dataclass_field(default_factory=dict)


def _raw_or_default(field: FieldDefinition, state: _Expansion) -> Any:
    raw = state.values.get(field.field_key)
    if is_empty_value(raw):
        return field.default_value or ""
    return raw


def _resolve_text(field: FieldDefinition, state: _Expansion) -> str:
    return stringify(_raw_or_default(field, state))


def _resolve_date(field: FieldDefinition, state: _Expansion) -> str:
    raw = _raw_or_default(field, state)
    if isinstance(raw, (date, datetime)):
        return f"{raw:%B} {raw.day}, {raw.year}"
    return stringify(raw)


def _resolve_checkbox(field: FieldDefinition, state: _Expansion) -> str:
    raw = _raw_or_default(field, state)
    if isinstance(raw, (list, tuple)):
        return generate_sentence_from_selections(raw)
    return stringify(raw)


def _resolve_patient_data(field: FieldDefinition, state: _Expansion) -> str:
    return get_patient_data_value(state.patient, field.data_source, state.today)


def _resolve_calculation(field: FieldDefinition, state: _Expansion) -> str:
    if not field.calculation_formula:
        return ""
    numeric_inputs = {}
    for key, value in state.values.items():
        number = as_number(value)
        if number is not None:
            numeric_inputs[key] = number
    result = calculate_formula(field.calculation_formula, numeric_inputs)
    if result is None:
        return ""
    state.calculated_values[field.field_key] = result
    return stringify(result)


def _resolve_conditional(field: FieldDefinition, state: _Expansion) -> str:
    # Hidden fields never reach dispatch, so a show/hide rule here means visible.
    logic = field.conditional_logic
    if logic is None or logic.then not in (ConditionalEffect.SHOW, ConditionalEffect.HIDE):
        return ""
    return _resolve_text(field, state)


_RESOLVERS: Dict[FieldType, Callable[[FieldDefinition, _Expansion], str]] = {
    FieldType.TEXT: _resolve_text,
    FieldType.DROPDOWN: _resolve_text,
    FieldType.RADIO: _resolve_text,
    FieldType.NUMBER: _resolve_text,
    FieldType.DATE: _resolve_date,
    FieldType.CHECKBOX: _resolve_checkbox,
    FieldType.PATIENT_DATA: _resolve_patient_data,
    FieldType.CALCULATION: _resolve_calculation,
    FieldType.CONDITIONAL: _resolve_conditional,
}

_UNHANDLED = set(FieldType) - set(_RESOLVERS)
if _UNHANDLED:
    raise ImportError(f"No resolver for field types: {sorted(t.value for t in _UNHANDLED)}")


def _apply_set_values(fields: List[FieldDefinition], values: Dict[str, Any]) -> None:
    for field in fields:
        logic = field.conditional_logic
        if logic is None or logic.then != ConditionalEffect.SET_VALUE or logic.then_value is None:
            continue
        if evaluate_condition(logic.rule, values):
            values[field.field_key] = logic.then_value


def expand_phrase(
    phrase: Union[ClinicalPhrase, Mapping[str, Any]],
    fields: Iterable[Union[FieldDefinition, Mapping[str, Any]]],
    values: Optional[Mapping[str, Any]] = None,
    patient_context: Any = None,
    today: Optional[date] = None,
) -> ExpansionResult:
    """Fill every placeholder of ``phrase`` and report which keys were used.

    Placeholders without a definition fall back to the raw entry in
    ``values``; anything unresolved becomes an empty string. The caller's
    ``values`` mapping is never modified.
    """

    phrase = coerce_phrase(phrase)
    definitions = sorted(coerce_fields(fields), key=lambda f: f.sort_order)
    state = _Expansion(values=dict(values or {}), patient=patient_context, today=today)
    _apply_set_values(definitions, state.values)

    by_key: Dict[str, FieldDefinition] = {}
    for definition in definitions:
        by_key.setdefault(definition.field_key, definition)

    keys = extract_field_keys(phrase.content)
    substitutions: Dict[str, str] = {}
    for key in keys:
        definition = by_key.get(key)
        if definition is None:
            substitutions[key] = stringify(state.values.get(key))
        elif is_field_hidden(definition, state.values):
            substitutions[key] = ""
        else:
            substitutions[key] = _RESOLVERS[definition.field_type](definition, state)

    content = fill_placeholders(phrase.content, substitutions)
    content = EXTRA_BLANK_LINES.sub("\n\n", content).strip()
    used_fields = [key for key in keys if substitutions[key]]

    logger.debug(
        f"Expanded phrase {phrase.id or phrase.name!r}: "
        f"{len(used_fields)} of {len(keys)} placeholders filled"
    )
    return ExpansionResult(
        content=content,
        used_fields=used_fields,
        calculated_values=state.calculated_values,
    )
