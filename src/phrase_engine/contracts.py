import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Scalars, booleans or multi-select lists keyed by field key.
FieldValues = Dict[str, Any]


class _Persisted(BaseModel):
    """Accepts both snake_case names and the camelCase keys used in storage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _scalar_text(value: Any) -> Any:
    """Stored defaults and option values may be numbers or booleans; keep them as text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    PATIENT_DATA = "patient_data"
    CALCULATION = "calculation"
    CONDITIONAL = "conditional"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class ConditionalEffect(str, Enum):
    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    SET_VALUE = "set_value"


class ConditionRule(_Persisted):
    field: str
    # Kept as a plain string so unknown operators parse and then evaluate false.
    operator: str
    value: Optional[Union[bool, int, float, str]] = None


class ConditionalLogic(_Persisted):
    rule: ConditionRule = Field(alias="if")
    then: ConditionalEffect
    then_value: Optional[str] = None

    @field_validator("then_value", mode="before")
    @classmethod
    def _then_value_as_text(cls, value: Any) -> Any:
        return _scalar_text(value)


class FieldValidation(_Persisted):
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    message: Optional[str] = None


class FieldOption(_Persisted):
    value: str
    label: str = ""

    @field_validator("value", "label", mode="before")
    @classmethod
    def _option_as_text(cls, value: Any) -> Any:
        return _scalar_text(value)


class PatientDataSource(_Persisted):
    source: str  # "name" | "labs.creatinine" | "systems.cardiovascular" ...
    format: Optional[str] = None


class FieldDefinition(_Persisted):
    field_key: str
    field_type: FieldType = FieldType.TEXT
    label: str = ""
    placeholder: Optional[str] = None
    default_value: Optional[str] = None
    options: Optional[Union[PatientDataSource, List[FieldOption]]] = None
    validation: Optional[FieldValidation] = None
    conditional_logic: Optional[ConditionalLogic] = None
    calculation_formula: Optional[str] = None  # e.g. "bmi = weight / (height * height)"
    sort_order: int = 0

    @field_validator("default_value", mode="before")
    @classmethod
    def _default_as_text(cls, value: Any) -> Any:
        return _scalar_text(value)

    @property
    def display_label(self) -> str:
        return self.label or self.field_key

    @property
    def data_source(self) -> str:
        if isinstance(self.options, PatientDataSource):
            return self.options.source
        return self.field_key


class ContextTriggers(_Persisted):
    note_type: List[str] = Field(default_factory=list)  # "H&P", "Progress Note" ...
    section: List[str] = Field(default_factory=list)  # "Subjective", "Plan" ...
    time_of_day: List[str] = Field(default_factory=list)


class ClinicalPhrase(_Persisted):
    id: str = ""
    name: str = ""
    content: str = ""  # template with {{field_key}} placeholders
    description: Optional[str] = None
    shortcut: Optional[str] = None  # autotext trigger like ".sob"
    hotkey: Optional[str] = None  # e.g. "ctrl+shift+1"
    folder_id: Optional[str] = None
    context_triggers: ContextTriggers = Field(default_factory=ContextTriggers)
    is_active: bool = True
    usage_count: int = 0
    last_used_at: Optional[str] = None


class ExpansionResult(BaseModel):
    content: str
    used_fields: List[str] = Field(default_factory=list)
    calculated_values: Dict[str, float] = Field(default_factory=dict)


class SearchWeights(BaseModel):
    """Relative weights; shortcut > name > description/content > category."""

    shortcut_exact: float = 100.0
    shortcut: float = 50.0
    name: float = 30.0
    keyword: float = 20.0
    description: float = 10.0
    content: float = 5.0
    category: float = 2.0


class PhraseMatch(BaseModel):
    phrase: ClinicalPhrase
    score: float
    match_type: str  # "shortcut" | "name" | "content" | "context"


def coerce_fields(fields: Iterable[Union[FieldDefinition, Mapping[str, Any]]]) -> List[FieldDefinition]:
    """Load field definitions, skipping any that do not match the schema."""

    loaded: List[FieldDefinition] = []
    for raw in fields or []:
        if isinstance(raw, FieldDefinition):
            loaded.append(raw)
            continue
        try:
            loaded.append(FieldDefinition.model_validate(raw))
        except ValidationError as exc:
            logger.warning(f"Skipping malformed field definition {raw!r}: {exc.error_count()} error(s)")
    return loaded


def load_phrase(raw: Union[ClinicalPhrase, Mapping[str, Any]]) -> Optional[ClinicalPhrase]:
    """Parse one stored phrase, or log and return ``None`` when it does not fit the schema."""

    if isinstance(raw, ClinicalPhrase):
        return raw
    try:
        return ClinicalPhrase.model_validate(raw)
    except ValidationError as exc:
        logger.warning(f"Skipping malformed phrase {raw!r}: {exc.error_count()} error(s)")
        return None


def load_phrases(phrases: Iterable[Any]) -> List[Tuple[Any, ClinicalPhrase]]:
    """Pair each caller object with its parsed phrase, dropping unparseable ones."""

    loaded: List[Tuple[Any, ClinicalPhrase]] = []
    for raw in phrases or []:
        phrase = load_phrase(raw)
        if phrase is not None:
            loaded.append((raw, phrase))
    return loaded


def coerce_phrase(phrase: Union[ClinicalPhrase, Mapping[str, Any]]) -> ClinicalPhrase:
    """Best-effort phrase for expansion: keep the template text even if other keys are bad."""

    loaded = load_phrase(phrase)
    if loaded is not None:
        return loaded
    content = phrase.get("content") if isinstance(phrase, Mapping) else None
    return ClinicalPhrase(content=content if isinstance(content, str) else "")
