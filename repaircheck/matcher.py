"""
Matcher — Case-Insensitive Phrase Search

Pure functions over (text, phrase). No state, no side effects.

Three match modes:
  WORD       single words on word boundaries, multi-word phrases as
             literal substrings ("if I hurt" is not boundary-safe)
  PREFIX     leading word boundary only, to catch inflections
             ("hit" -> "hitting")
  SUBSTRING  literal substring anywhere

Compiled patterns are memoized by the `re` module's own cache.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class MatchMode(str, Enum):
    WORD = "word"
    PREFIX = "prefix"
    SUBSTRING = "substring"


@dataclass(frozen=True)
class MatchResult:
    """Occurrences of one phrase in one text."""
    phrase: str
    count: int
    excerpts: tuple[str, ...] = ()

    @property
    def matched(self) -> bool:
        return self.count > 0


def _pattern(phrase: str, mode: MatchMode) -> re.Pattern:
    escaped = re.escape(phrase)
    if mode is MatchMode.PREFIX:
        source = rf"\b{escaped}"
    elif mode is MatchMode.WORD and " " not in phrase.strip():
        source = rf"\b{escaped}\b"
    else:
        source = escaped
    return re.compile(source, re.IGNORECASE)


def count_matches(text: str, phrase: str, mode: MatchMode = MatchMode.WORD) -> int:
    """Number of non-overlapping occurrences of `phrase` in `text`."""
    if not text or not phrase:
        return 0
    return sum(1 for _ in _pattern(phrase, mode).finditer(text))


def match_spans(
    text: str,
    phrase: str,
    mode: MatchMode = MatchMode.WORD,
) -> list[tuple[int, int]]:
    """(start, end) offsets of every occurrence of `phrase`."""
    if not text or not phrase:
        return []
    return [m.span() for m in _pattern(phrase, mode).finditer(text)]


def contains(text: str, phrase: str, mode: MatchMode = MatchMode.SUBSTRING) -> bool:
    if not text or not phrase:
        return False
    return _pattern(phrase, mode).search(text) is not None


def _window(text: str, start: int, end: int, window: int) -> str:
    lo = max(0, start - window)
    hi = min(len(text), end + window)
    excerpt = text[lo:hi]
    if lo > 0:
        excerpt = "..." + excerpt
    if hi < len(text):
        excerpt = excerpt + "..."
    return excerpt


def extract_context(
    text: str,
    phrase: str,
    mode: MatchMode = MatchMode.WORD,
    window: int = 50,
) -> str:
    """
    Excerpt of `text` around the first occurrence of `phrase`.

    Takes `window` characters either side of the match, with "..." marking
    a cut at either end. Returns the phrase itself when it does not occur.
    """
    match = _pattern(phrase, mode).search(text) if text and phrase else None
    if match is None:
        return phrase
    return _window(text, match.start(), match.end(), window)


def find_matches(
    text: str,
    phrase: str,
    mode: MatchMode = MatchMode.WORD,
    window: int = 50,
    max_excerpts: int = 3,
) -> MatchResult:
    """
    Count every occurrence of `phrase` and keep up to `max_excerpts`
    context windows, earliest first.
    """
    if not text or not phrase:
        return MatchResult(phrase=phrase, count=0)

    count = 0
    excerpts: list[str] = []
    for match in _pattern(phrase, mode).finditer(text):
        count += 1
        if len(excerpts) < max_excerpts:
            excerpts.append(_window(text, match.start(), match.end(), window))

    return MatchResult(phrase=phrase, count=count, excerpts=tuple(excerpts))


def scan(
    text: str,
    phrases: tuple[str, ...],
    mode: MatchMode = MatchMode.WORD,
    window: int = 50,
    max_excerpts: int = 3,
) -> list[MatchResult]:
    """`find_matches` for each phrase, keeping only those that matched, in lexicon order."""
    results = []
    for phrase in phrases:
        result = find_matches(text, phrase, mode, window, max_excerpts)
        if result.matched:
            results.append(result)
    return results
