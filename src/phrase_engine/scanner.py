import re
from typing import Dict, List

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def extract_field_keys(template: str) -> List[str]:
    """Return the distinct placeholder keys of ``template`` in first-occurrence order."""

    keys = [match.group(1) for match in PLACEHOLDER_PATTERN.finditer(template or "")]
    # Preserve order but drop duplicates.
    return list(dict.fromkeys(keys))


def fill_placeholders(template: str, substitutions: Dict[str, str]) -> str:
    """Replace every ``{{key}}`` with its substitution; unknown keys become empty."""

    return PLACEHOLDER_PATTERN.sub(
        lambda match: substitutions.get(match.group(1), ""), template or ""
    )
