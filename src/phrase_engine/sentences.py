from typing import Dict, Iterable, List, Mapping, Optional, Tuple

NEGATIVE_PREFIXES = ("no_", "denies_")

# Checklist keys mapped to the wording used in the note. Extend per service line.
SYMPTOM_PHRASES: Dict[str, str] = {
    "sob": "shortness of breath",
    "doe": "dyspnea on exertion",
    "pnd": "paroxysmal nocturnal dyspnea",
    "cp": "chest pain",
    "chest_pain": "chest pain",
    "abd_pain": "abdominal pain",
    "n_v": "nausea and vomiting",
    "ha": "headache",
    "loc": "loss of consciousness",
    "le_edema": "lower extremity edema",
    "brbpr": "bright red blood per rectum",
    "night_sweats": "night sweats",
    "weight_loss": "weight loss",
}

# Keys that read as a denial without carrying a negative prefix.
NEGATIVE_KEYWORDS: Dict[str, str] = {
    "afebrile": "fever",
    "asymptomatic": "symptoms",
    "pain_free": "pain",
}


def _classify(key: str, lookup: Mapping[str, str]) -> Tuple[bool, str]:
    if key in NEGATIVE_KEYWORDS:
        return True, NEGATIVE_KEYWORDS[key]
    for prefix in NEGATIVE_PREFIXES:
        if key.startswith(prefix) and len(key) > len(prefix):
            symptom = key[len(prefix):]
            return True, lookup.get(symptom, symptom)
    return False, lookup.get(key, key)


def generate_sentence_from_selections(
    selected_keys: Iterable[str],
    lookup: Optional[Mapping[str, str]] = None,
    positive_prefix: str = "Patient reports ",
    negative_prefix: str = "Patient denies ",
) -> str:
    """Turn checklist selections into one sentence per selection, in order.

    ``["cough", "no_fever"]`` becomes
    ``"Patient reports cough. Patient denies fever."``. Keys missing from the
    lookup are written out as-is.
    """

    table = SYMPTOM_PHRASES if lookup is None else lookup
    sentences: List[str] = []
    for raw in selected_keys or []:
        key = str(raw).strip()
        if not key:
            continue
        negative, symptom = _classify(key, table)
        prefix = negative_prefix if negative else positive_prefix
        sentences.append(f"{prefix}{symptom}.")
    return " ".join(sentences)
