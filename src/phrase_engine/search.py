"""Phrase lookup for autocomplete, autotext and context suggestions.

Every function takes the phrase collection as an argument and keeps no
state between calls.
"""

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .contracts import ClinicalPhrase, PhraseMatch, SearchWeights, load_phrase, load_phrases

PhraseLike = Union[ClinicalPhrase, Mapping[str, Any]]

AUTOTEXT_PATTERN = re.compile(r"(\.\w+)$")


def _text_score(text: Optional[str], query: str, words: Sequence[str]) -> float:
    """1.0 for a substring hit, otherwise the share of query words found."""

    lowered = (text or "").lower()
    if not lowered:
        return 0.0
    if query in lowered:
        return 1.0
    if len(words) < 2:
        return 0.0
    matched = [word for word in words if word in lowered]
    return len(matched) / len(words)


def _score(phrase: ClinicalPhrase, query: str, weights: SearchWeights) -> Tuple[float, str]:
    q = query.strip().lower()
    if not q:
        return 0.0, ""
    words = q.split()

    shortcut_score = 0.0
    shortcut = (phrase.shortcut or "").strip().lower()
    if shortcut:
        if shortcut == q or shortcut.lstrip(".") == q.lstrip("."):
            shortcut_score = weights.shortcut_exact
        elif q in shortcut:
            shortcut_score = weights.shortcut

    name_hit = _text_score(phrase.name, q, words)
    name_score = weights.name if name_hit == 1.0 else weights.keyword * name_hit
    body_score = (
        weights.description * _text_score(phrase.description, q, words)
        + weights.content * _text_score(phrase.content, q, words)
    )
    category_score = weights.category if q in (phrase.folder_id or "").lower() else 0.0

    total = shortcut_score + name_score + body_score + category_score
    if shortcut_score:
        match_type = "shortcut"
    elif name_score:
        match_type = "name"
    else:
        match_type = "content"
    return total, match_type


def score_phrase(
    phrase: PhraseLike, query: str, weights: Optional[SearchWeights] = None
) -> float:
    loaded = load_phrase(phrase)
    if loaded is None:
        return 0.0
    return _score(loaded, query, weights or SearchWeights())[0]


def _ranked(
    phrases: Iterable[PhraseLike],
    query: str,
    weights: Optional[SearchWeights],
    active_only: bool,
) -> List[Tuple[PhraseLike, PhraseMatch]]:
    weights = weights or SearchWeights()
    hits: List[Tuple[PhraseLike, PhraseMatch]] = []
    for original, phrase in load_phrases(phrases):
        if active_only and not phrase.is_active:
            continue
        score, match_type = _score(phrase, query, weights)
        if score > 0:
            hits.append((original, PhraseMatch(phrase=phrase, score=score, match_type=match_type)))
    # sorted() is stable, so equal scores keep their input order.
    return sorted(hits, key=lambda hit: -hit[1].score)


def rank_phrases(
    phrases: Iterable[PhraseLike],
    query: str,
    weights: Optional[SearchWeights] = None,
    active_only: bool = False,
    limit: Optional[int] = None,
) -> List[PhraseMatch]:
    matches = [match for _, match in _ranked(phrases, query, weights, active_only)]
    return matches if limit is None else matches[:limit]


def search_phrases(
    phrases: Iterable[PhraseLike],
    query: str,
    weights: Optional[SearchWeights] = None,
    active_only: bool = False,
) -> List[PhraseLike]:
    """Return the phrases matching ``query``, best first.

    Shortcut hits outrank name hits, which outrank description and content
    hits; folder hits count least. Phrases scoring zero are dropped and the
    caller's objects are returned unchanged.
    """

    return [original for original, _ in _ranked(phrases, query, weights, active_only)]


def find_by_shortcut(phrases: Iterable[PhraseLike], shortcut: str) -> Optional[PhraseLike]:
    wanted = (shortcut or "").strip().lower()
    if not wanted:
        return None
    for original, phrase in load_phrases(phrases):
        if phrase.is_active and (phrase.shortcut or "").strip().lower() == wanted:
            return original
    return None


def detect_autotext(text: str, phrases: Iterable[PhraseLike]) -> Optional[PhraseLike]:
    """Match a trailing ``.shortcut`` token in typed ``text`` to a phrase."""

    match = AUTOTEXT_PATTERN.search((text or "").strip())
    if not match:
        return None
    return find_by_shortcut(phrases, match.group(1))


def _normalize_hotkey(hotkey: str) -> str:
    return "+".join(part.strip() for part in (hotkey or "").lower().split("+") if part.strip())


def find_by_hotkey(phrases: Iterable[PhraseLike], hotkey: str) -> Optional[PhraseLike]:
    wanted = _normalize_hotkey(hotkey)
    if not wanted:
        return None
    for original, phrase in load_phrases(phrases):
        if phrase.is_active and _normalize_hotkey(phrase.hotkey or "") == wanted:
            return original
    return None


def suggest_for_context(
    phrases: Iterable[PhraseLike],
    note_type: Optional[str] = None,
    section: Optional[str] = None,
    time_of_day: Optional[str] = None,
) -> List[PhraseMatch]:
    """Phrases whose context triggers fit the note being written.

    A phrase with no trigger for a dimension accepts any value there, but it
    must declare at least one trigger the context actually matched.
    """

    wanted = [
        ("note_type", note_type),
        ("section", section),
        ("time_of_day", time_of_day),
    ]
    if not any(value for _, value in wanted):
        return []

    matches: List[PhraseMatch] = []
    for _, phrase in load_phrases(phrases):
        if not phrase.is_active:
            continue
        triggers = phrase.context_triggers
        score = 0
        compatible = True
        for attribute, value in wanted:
            declared = getattr(triggers, attribute)
            if not value or not declared:
                continue
            if value in declared:
                score += 1
            else:
                compatible = False
                break
        if compatible and score:
            matches.append(PhraseMatch(phrase=phrase, score=float(score), match_type="context"))
    return sorted(matches, key=lambda match: -match.score)


def recent_phrases(phrases: Iterable[PhraseLike], limit: int = 5) -> List[PhraseLike]:
    used = [
        (original, phrase)
        for original, phrase in load_phrases(phrases)
        if phrase.is_active and phrase.last_used_at
    ]
    used.sort(key=lambda pair: pair[1].last_used_at, reverse=True)
    return [original for original, _ in used[:limit]]


def frequent_phrases(phrases: Iterable[PhraseLike], limit: int = 5) -> List[PhraseLike]:
    used = [
        (original, phrase)
        for original, phrase in load_phrases(phrases)
        if phrase.is_active and phrase.usage_count > 0
    ]
    used.sort(key=lambda pair: pair[1].usage_count, reverse=True)
    return [original for original, _ in used[:limit]]
