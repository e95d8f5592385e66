from __future__ import annotations

import pytest

from apps.structuring.heuristics import FILLER_PHRASES, HeuristicContentExtractor, score_sentence
from essaycoach.core.stages import Stage, profile_for
from essaycoach.utils.text import word_patterns

THESIS_TEXT = "I defend that digital education is essential but needs public investment."


def test_contextual_pattern_extracts_thesis() -> None:
    found = HeuristicContentExtractor().match(THESIS_TEXT, Stage.THESIS)
    assert found is not None
    assert found.strategy == "pattern"
    assert found.text == "digital education is essential but needs public investment"


def test_portuguese_topic_pattern() -> None:
    found = HeuristicContentExtractor().match("Meu tema é a evasão escolar no Brasil.", Stage.TOPIC)
    assert found is not None
    assert found.strategy == "pattern"
    assert found.text == "a evasão escolar no Brasil"


def test_hedge_marker_suppresses_every_strategy() -> None:
    extractor = HeuristicContentExtractor()
    assert extractor.extract("For example, I defend that schools should ban phones entirely.", Stage.THESIS) is None
    assert extractor.extract("Você poderia dizer: minha tese é que o voto deveria ser facultativo.", Stage.THESIS) is None


def test_extra_hedge_markers_extend_the_defaults() -> None:
    text = "Perhaps my topic is the future of public libraries."
    assert HeuristicContentExtractor().extract(text, Stage.TOPIC) == "the future of public libraries"
    assert HeuristicContentExtractor(extra_hedge_markers=["perhaps"]).extract(text, Stage.TOPIC) is None


def test_hedge_markers_are_word_bounded() -> None:
    extractor = HeuristicContentExtractor()
    assert not extractor.is_hedged("The country is trying new policies.")
    assert extractor.is_hedged("Try writing it differently.")


def test_longest_quoted_span_is_used_when_no_pattern_matches() -> None:
    quote = "Since the industrial revolution, cities have grown faster than their infrastructure."
    text = f'Here is my draft: "{quote}" And a shorter one: "cities keep growing". What do you think?'
    found = HeuristicContentExtractor().match(text, Stage.INTRODUCTION)
    assert found is not None
    assert found.strategy == "quoted"
    assert found.text == quote


def test_short_quotations_do_not_pair_across_the_gap() -> None:
    text = 'The mayor said "no" and then the council replied "yes" at last.'
    found = HeuristicContentExtractor().match(text, Stage.INTRODUCTION)
    assert found is not None
    assert found.strategy == "scored"
    assert found.text == text


def test_quotations_spanning_lines_are_ignored() -> None:
    text = 'He wrote "the first line of\nthe second line" then stopped'
    assert HeuristicContentExtractor()._match_quoted(text, profile_for(Stage.INTRODUCTION)) is None


def test_question_sentences_lose_to_declarative_ones() -> None:
    question = "Is this really true?"
    statement = "This is surely true."
    assert len(question) == len(statement)

    profile = profile_for(Stage.TOPIC)
    fillers = word_patterns(FILLER_PHRASES)
    assert score_sentence(question, profile, fillers) == score_sentence(statement, profile, fillers) - 3

    found = HeuristicContentExtractor().match(f"{question} {statement}", Stage.TOPIC)
    assert found is not None
    assert found.strategy == "scored"
    assert found.text == statement


def test_rank_candidates_orders_by_score_then_position() -> None:
    extractor = HeuristicContentExtractor()
    text = "Cities are growing. The subject of this essay is urban mobility in large cities."
    ranked = extractor.rank_candidates(text, profile_for(Stage.TOPIC))
    assert [candidate.text for candidate in ranked] == [
        "The subject of this essay is urban mobility in large cities.",
        "Cities are growing.",
    ]
    assert ranked[0].score > ranked[1].score


def test_fallback_picks_longest_sentence_when_scores_are_not_positive() -> None:
    found = HeuristicContentExtractor().match("Ok so now let's move on right now.", Stage.TOPIC)
    assert found is not None
    assert found.strategy == "fallback"
    assert found.text == "Ok so now let's move on right now."


def test_fallback_skips_transition_sentences() -> None:
    assert HeuristicContentExtractor().match("Let's move on to the next part now ok so right well now.", Stage.TOPIC) is None


@pytest.mark.parametrize("text", [None, "", "   ", "Too short."])
def test_nothing_extracted_from_empty_or_tiny_input(text) -> None:
    assert HeuristicContentExtractor().match(text, Stage.THESIS) is None


def test_finalize_has_no_field_to_fill() -> None:
    assert HeuristicContentExtractor().match(THESIS_TEXT, Stage.FINALIZE) is None


@pytest.mark.parametrize(
    ("text", "stage"),
    [
        (THESIS_TEXT, Stage.THESIS),
        ("In conclusion, the state must fund digital literacy programs in every public school.", Stage.CONCLUSION),
        ("Firstly, access to broadband is still unequal across regions of the country.", Stage.DEVELOPMENT1),
        ("Moreover, teachers lack training. Furthermore, schools lack devices for every student.", Stage.DEVELOPMENT2),
        ("Historically, public schools adopted technology late. This context matters for the argument.", Stage.INTRODUCTION),
        ("Em segundo lugar, a falta de formação docente compromete o uso das tecnologias.", Stage.DEVELOPMENT2),
    ],
)
def test_extracted_values_are_non_empty_substrings(text: str, stage: Stage) -> None:
    found = HeuristicContentExtractor().match(text, stage)
    assert found is not None
    assert found.text.strip()
    assert found.text in text
    assert len(found.text) >= 15
