"""Dotted-path lookups into a patient record (``labs.creatinine``, ``systems.cv``)."""

from datetime import date, datetime
from typing import Any, Mapping, Optional

from pydantic.alias_generators import to_camel

from .conditions import stringify

HOSPITAL_DAY_SOURCE = "hospital_day"


def _get(container: Any, segment: str) -> Any:
    if not segment:
        return None
    candidates = (segment, to_camel(segment))
    if isinstance(container, Mapping):
        for name in candidates:
            if name in container:
                return container[name]
        return None
    if isinstance(container, (list, tuple)):
        if segment.isdigit() and int(segment) < len(container):
            return container[int(segment)]
        return None
    if isinstance(container, (str, bytes, int, float, bool)):
        return None
    for name in candidates:
        value = getattr(container, name, None)
        if value is not None and not callable(value):
            return value
    return None


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def _hospital_day(patient: Any, today: Optional[date]) -> str:
    admitted = _as_date(_get(patient, "created_at"))
    if admitted is None:
        return "Hospital Day #1"
    days = ((today or date.today()) - admitted).days + 1
    return f"Hospital Day #{max(days, 1)}"


def get_patient_data_value(patient: Any, source: str, today: Optional[date] = None) -> str:
    """Resolve ``source`` against ``patient``; unresolved paths give ``""``."""

    if patient is None or not source:
        return ""

    current = patient
    for segment in source.strip().split("."):
        current = _get(current, segment)
        if current is None:
            break

    if current is None:
        return _hospital_day(patient, today) if source == HOSPITAL_DAY_SOURCE else ""
    if isinstance(current, Mapping):
        return ""
    return stringify(current)
