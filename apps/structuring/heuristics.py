"""Best-effort text → skeleton field extraction.

The pipeline runs in a fixed order and the first strategy that yields a value
wins:

1. hedge guard (suggestions are never promoted to committed content)
2. contextual pattern match from the stage table
3. longest quoted span
4. relevance-scored sentence selection
5. longest meaningful sentence

Every step is a pure function of ``(text, stage)``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from essaycoach.core.stages import SPAN_MAX_CHARS, SPAN_MIN_CHARS, Stage, StageProfile, profile_for
from essaycoach.utils.text import count_hits, split_sentences, word_patterns

LOGGER = logging.getLogger("essaycoach.structuring.heuristics")

DEFAULT_HEDGE_MARKERS: Tuple[str, ...] = (
    "example",
    "for instance",
    "suggestion",
    "I suggest",
    "you could",
    "consider using",
    "try",
    "one option would be",
    "exemplo",
    "por exemplo",
    "sugestão",
    "sugiro",
    "você poderia",
    "considere usar",
    "tente",
    "uma opção seria",
)

FILLER_PHRASES: Tuple[str, ...] = (
    "let's",
    "let’s",
    "now",
    "so",
    "ok",
    "right",
    "well",
    "vamos",
    "agora",
    "então",
    "certo",
)

TRANSITION_OPENERS: Tuple[str, ...] = (
    "let's",
    "let’s",
    "now i will",
    "now i",
    "vamos",
    "agora vou",
    "agora eu",
)

TRANSITION_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(rf"^{re.escape(opener)}(?!\w)", re.IGNORECASE) for opener in TRANSITION_OPENERS
)

# Marks pair in order of appearance; the length bound is checked afterwards.
QUOTE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r'"([^"]*)"'),
    re.compile(r"“([^”]*)”"),
    re.compile(r"‘([^’]*)’"),
)

PREFERRED_LENGTH = (30, 200)
ACCEPTABLE_LENGTH = (15, 300)
FALLBACK_MIN_CHARS = 20


@dataclass(frozen=True)
class ExtractionCandidate:
    text: str
    score: int
    position: int


@dataclass(frozen=True)
class HeuristicMatch:
    """Extracted value plus the strategy that produced it."""

    text: str
    strategy: str


def score_sentence(sentence: str, profile: StageProfile, fillers: Sequence[Pattern[str]]) -> int:
    """Relevance score used by the sentence-selection step."""

    length = len(sentence)
    score = 0
    if PREFERRED_LENGTH[0] <= length <= PREFERRED_LENGTH[1]:
        score += 10
    elif ACCEPTABLE_LENGTH[0] <= length <= ACCEPTABLE_LENGTH[1]:
        score += 5
    score += 5 * profile.keyword_hits(sentence)
    if "?" in sentence:
        score -= 3
    score -= 2 * count_hits(fillers, sentence)
    return score


class HeuristicContentExtractor:
    """Derives one best-guess string for a stage field from arbitrary text."""

    def __init__(
        self,
        *,
        hedge_markers: Iterable[str] | None = None,
        extra_hedge_markers: Iterable[str] | None = None,
    ) -> None:
        markers = list(DEFAULT_HEDGE_MARKERS if hedge_markers is None else hedge_markers)
        markers.extend(extra_hedge_markers or [])
        self.hedge_markers: Tuple[str, ...] = tuple(markers)
        self._hedge_patterns = word_patterns(self.hedge_markers)
        self._filler_patterns = word_patterns(FILLER_PHRASES)

    def extract(self, text: str | None, stage: Stage) -> Optional[str]:
        found = self.match(text, stage)
        return found.text if found else None

    def match(self, text: str | None, stage: Stage) -> Optional[HeuristicMatch]:
        if not text or not text.strip() or stage.field is None:
            return None
        if self.is_hedged(text):
            LOGGER.debug("Hedge marker present; skipping extraction for %s", stage.value)
            return None

        profile = profile_for(stage)
        steps = (
            ("pattern", self._match_pattern),
            ("quoted", self._match_quoted),
            ("scored", self._match_scored),
            ("fallback", self._match_fallback),
        )
        for strategy, step in steps:
            value = step(text, profile)
            if value:
                LOGGER.debug("Extracted %s via %s", stage.value, strategy)
                return HeuristicMatch(text=value, strategy=strategy)
        return None

    def is_hedged(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._hedge_patterns)

    # ------------------------------------------------------------------

    @staticmethod
    def _match_pattern(text: str, profile: StageProfile) -> Optional[str]:
        for pattern in profile.patterns:
            found = pattern.search(text)
            if found:
                span = found.group("span").strip()
                if len(span) >= SPAN_MIN_CHARS:
                    return span
        return None

    @staticmethod
    def _match_quoted(text: str, profile: StageProfile) -> Optional[str]:
        best: Tuple[int, int, str] | None = None
        for pattern in QUOTE_PATTERNS:
            for found in pattern.finditer(text):
                span = found.group(1).strip()
                if "\n" in span or not SPAN_MIN_CHARS <= len(span) <= SPAN_MAX_CHARS:
                    continue
                key = (-len(span), found.start(), span)
                if best is None or key < best:
                    best = key
        return best[2] if best else None

    def _match_scored(self, text: str, profile: StageProfile) -> Optional[str]:
        candidates = self.rank_candidates(text, profile)
        if not candidates or candidates[0].score <= 0:
            return None
        return candidates[0].text

    def rank_candidates(self, text: str, profile: StageProfile) -> List[ExtractionCandidate]:
        """Eligible sentences, best first (ties keep text order)."""

        candidates = [
            ExtractionCandidate(text=sentence, score=score_sentence(sentence, profile, self._filler_patterns), position=offset)
            for offset, sentence in split_sentences(text)
            if SPAN_MIN_CHARS <= len(sentence) <= SPAN_MAX_CHARS
        ]
        candidates.sort(key=lambda candidate: (-candidate.score, candidate.position))
        return candidates

    @staticmethod
    def _match_fallback(text: str, profile: StageProfile) -> Optional[str]:
        best: str | None = None
        for _, sentence in split_sentences(text):
            if len(sentence) < FALLBACK_MIN_CHARS:
                continue
            if any(pattern.match(sentence) for pattern in TRANSITION_PATTERNS):
                continue
            if best is None or len(sentence) > len(best):
                best = sentence
        return best


__all__ = [
    "DEFAULT_HEDGE_MARKERS",
    "ExtractionCandidate",
    "HeuristicContentExtractor",
    "HeuristicMatch",
    "score_sentence",
]
