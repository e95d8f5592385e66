"""Text helpers shared by the extractors and the sanitizer."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Sequence
from typing import List, Pattern, Tuple

SENTENCE_PATTERN = re.compile(r"[^.!?;]+(?:[.!?;]+|$)")
BLANK_RUN_PATTERN = re.compile(r"(?:[ \t]*\n){3,}")


def split_sentences(text: str | None) -> List[Tuple[int, str]]:
    """Split text after ``. ! ? ;`` keeping each terminator with its sentence.

    Returns ``(offset, sentence)`` pairs with surrounding whitespace trimmed;
    empty fragments are dropped.
    """

    if not text:
        return []
    sentences: List[Tuple[int, str]] = []
    for match in SENTENCE_PATTERN.finditer(text):
        raw = match.group(0)
        stripped = raw.strip()
        if not stripped:
            continue
        offset = match.start() + (len(raw) - len(raw.lstrip()))
        sentences.append((offset, stripped))
    return sentences


def fold_accents(value: str) -> str:
    """Lowercase and drop combining marks so "Conclusão" matches "conclusao"."""

    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def collapse_blank_lines(text: str) -> str:
    """Reduce any run of two or more blank lines to a single blank line."""

    return BLANK_RUN_PATTERN.sub("\n\n", text)


def word_patterns(words: Sequence[str]) -> Tuple[Pattern[str], ...]:
    """Compile case-insensitive, word-bounded patterns for each phrase."""

    compiled = []
    for word in words:
        cleaned = word.strip() if isinstance(word, str) else ""
        if not cleaned:
            continue
        compiled.append(re.compile(rf"(?<!\w){re.escape(cleaned)}(?!\w)", re.IGNORECASE))
    return tuple(compiled)


def count_hits(patterns: Sequence[Pattern[str]], text: str) -> int:
    return sum(len(pattern.findall(text)) for pattern in patterns)


__all__ = ["collapse_blank_lines", "count_hits", "fold_accents", "split_sentences", "word_patterns"]
