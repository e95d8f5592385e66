"""Authoring stages and the per-stage extraction table."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Pattern, Tuple

from essaycoach.utils.text import count_hits, fold_accents, word_patterns

SPAN_MIN_CHARS = 15
SPAN_MAX_CHARS = 400


class Stage(str, Enum):
    """Linear authoring workflow; ``finalize`` is terminal."""

    TOPIC = "topic"
    THESIS = "thesis"
    INTRODUCTION = "introduction"
    DEVELOPMENT1 = "development1"
    DEVELOPMENT2 = "development2"
    CONCLUSION = "conclusion"
    FINALIZE = "finalize"

    @property
    def position(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def field(self) -> Optional[str]:
        """Skeleton field filled during this stage (``None`` for finalize)."""
        if self is Stage.FINALIZE:
            return None
        return self.value

    @property
    def is_final(self) -> bool:
        return self is Stage.FINALIZE

    def next(self) -> "Stage":
        if self.is_final:
            return self
        return STAGE_ORDER[self.position + 1]

    @classmethod
    def parse(cls, value: object) -> Optional["Stage"]:
        """Resolve a stage name (English or the Portuguese service aliases)."""
        if isinstance(value, Stage):
            return value
        if not isinstance(value, str):
            return None
        key = fold_accents(value)
        if not key:
            return None
        return _STAGE_ALIASES.get(key)


STAGE_ORDER: Tuple[Stage, ...] = tuple(Stage)
SKELETON_FIELDS: Tuple[str, ...] = tuple(stage.value for stage in STAGE_ORDER if stage.field)


_STAGE_ALIASES: Dict[str, Stage] = {
    "topic": Stage.TOPIC,
    "tema": Stage.TOPIC,
    "thesis": Stage.THESIS,
    "tese": Stage.THESIS,
    "introduction": Stage.INTRODUCTION,
    "introducao": Stage.INTRODUCTION,
    "development1": Stage.DEVELOPMENT1,
    "desenvolvimento1": Stage.DEVELOPMENT1,
    "development2": Stage.DEVELOPMENT2,
    "desenvolvimento2": Stage.DEVELOPMENT2,
    "conclusion": Stage.CONCLUSION,
    "conclusao": Stage.CONCLUSION,
    "finalize": Stage.FINALIZE,
    "finalizacao": Stage.FINALIZE,
    "finalizar": Stage.FINALIZE,
}


def _phrase(intro: str) -> Pattern[str]:
    # Span stops at sentence punctuation, a line break, or end of text.
    return re.compile(
        rf"\b{intro}\s+(?P<span>[^.!?\n]{{{SPAN_MIN_CHARS},{SPAN_MAX_CHARS}}})(?=[.!?\n]|$)",
        re.IGNORECASE,
    )


@dataclass(frozen=True)
class StageProfile:
    """Everything the heuristic extractor needs to know about one stage."""

    stage: Stage
    patterns: Tuple[Pattern[str], ...] = ()
    keywords: Tuple[str, ...] = ()
    min_length: int = 0
    keyword_patterns: Tuple[Pattern[str], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keyword_patterns", word_patterns(self.keywords))

    def keyword_hits(self, text: str) -> int:
        return count_hits(self.keyword_patterns, text)


def _profile(stage: Stage, intros: List[str], keywords: List[str], min_length: int) -> StageProfile:
    return StageProfile(
        stage=stage,
        patterns=tuple(_phrase(intro) for intro in intros),
        keywords=tuple(keywords),
        min_length=min_length,
    )


STAGE_PROFILES: Dict[Stage, StageProfile] = {
    Stage.TOPIC: _profile(
        Stage.TOPIC,
        [
            r"my (?:essay )?topic is",
            r"the (?:essay )?topic is",
            r"the theme is",
            r"I (?:want|would like) to write about",
            r"meu tema [ée]",
            r"o tema [ée]",
            r"quero escrever sobre",
            r"a proposta [ée]",
        ],
        ["topic", "theme", "subject", "tema", "assunto", "proposta"],
        15,
    ),
    Stage.THESIS: _profile(
        Stage.THESIS,
        [
            r"I defend that",
            r"I believe(?: that)?",
            r"I argue that",
            r"my thesis is(?: that)?",
            r"defendo que",
            r"acredito que",
            r"minha tese [ée](?: que)?",
        ],
        ["defend", "believe", "argue", "thesis", "position", "defendo", "acredito", "tese", "posicionamento"],
        20,
    ),
    Stage.INTRODUCTION: _profile(
        Stage.INTRODUCTION,
        [
            r"my introduction (?:is|will be|would be)",
            r"in (?:my|the) introduction,? I(?: will)?",
            r"I (?:will|would) (?:start|open|begin) (?:by|with)",
            r"minha introdução (?:[ée]|será|seria)",
            r"na introdução,? (?:eu )?(?:vou|irei)",
            r"vou (?:começar|iniciar) (?:com|falando)",
        ],
        ["introduction", "context", "historically", "introdução", "contexto", "historicamente"],
        30,
    ),
    Stage.DEVELOPMENT1: _profile(
        Stage.DEVELOPMENT1,
        [
            r"my first argument is(?: that)?",
            r"first(?:ly)?,",
            r"in the first (?:development )?paragraph,?",
            r"meu primeiro argumento [ée](?: que)?",
            r"primeiramente,?",
            r"em primeiro lugar,?",
            r"no primeiro desenvolvimento,?",
        ],
        ["first", "firstly", "initially", "primeiro", "primeiramente", "inicialmente"],
        30,
    ),
    Stage.DEVELOPMENT2: _profile(
        Stage.DEVELOPMENT2,
        [
            r"my second argument is(?: that)?",
            r"second(?:ly)?,",
            r"in the second (?:development )?paragraph,?",
            r"meu segundo argumento [ée](?: que)?",
            r"em segundo lugar,?",
            r"no segundo desenvolvimento,?",
        ],
        ["second", "secondly", "furthermore", "moreover", "segundo", "além disso", "ademais"],
        30,
    ),
    Stage.CONCLUSION: _profile(
        Stage.CONCLUSION,
        [
            r"in conclusion,?",
            r"to conclude,?",
            r"my conclusion is(?: that)?",
            r"em conclusão,?",
            r"concluo que",
            r"minha conclusão [ée](?: que)?",
            r"como proposta de intervenção,?",
            r"portanto,",
        ],
        ["conclusion", "therefore", "thus", "finally", "conclusão", "portanto", "logo", "intervenção"],
        30,
    ),
    Stage.FINALIZE: StageProfile(stage=Stage.FINALIZE),
}


def profile_for(stage: Stage) -> StageProfile:
    return STAGE_PROFILES[stage]


__all__ = [
    "SKELETON_FIELDS",
    "SPAN_MAX_CHARS",
    "SPAN_MIN_CHARS",
    "STAGE_ORDER",
    "STAGE_PROFILES",
    "Stage",
    "StageProfile",
    "profile_for",
]
