from __future__ import annotations

import pytest

from apps.structuring.sanitizer import ResponseSanitizer, sanitize

OUTLINE_REPLY = (
    "Great progress!\n"
    "{\n"
    '  "tema": "Digital education",\n'
    '  "introducao": {\n'
    '    "frase1": "Since 2020 schools changed.",\n'
    '    "frase2": "Access is unequal."\n'
    "  }\n"
    "}\n"
    "Keep going."
)


SAMPLES = [
    'Great thesis!\n\n```json\n{"tema": "x", "tese": "y"}\n```\n\n\n\nNext, write the introduction.',
    'Here is the plan {"thesis": "abc", "topic": "def"} for you.',
    'Summary:\n"tema": "Educação",\n"tese": "algo"\nDone',
    "```json\n```json\n{\n}\n```",
    "Plain reply with no fragments.\n\n\n\nSecond paragraph.",
    "```python\nprint('keep me')\n```",
    '{"outer": {"thesis": "nested"}}\nTail text',
    OUTLINE_REPLY,
]


def test_fenced_fragment_is_removed_and_blank_lines_collapse() -> None:
    assert sanitize(SAMPLES[0]) == "Great thesis!\n\nNext, write the introduction."


def test_loose_objects_with_schema_keys_are_removed() -> None:
    cleaned = sanitize(SAMPLES[1])
    assert '"thesis"' not in cleaned
    assert cleaned.startswith("Here is the plan")
    assert cleaned.endswith("for you.")


def test_nested_outline_objects_are_removed_whole() -> None:
    assert sanitize(OUTLINE_REPLY) == "Great progress!\n\nKeep going."
    assert sanitize('{"outer": {"thesis": "nested"}}\nTail text') == "Tail text"
    assert sanitize("Unclosed { brace then {\"tese\": \"x\"} end") == "Unclosed { brace then  end"


def test_remnant_key_lines_are_removed() -> None:
    assert sanitize(SAMPLES[2]) == "Summary:\nDone"


def test_non_machine_readable_content_survives() -> None:
    assert sanitize(SAMPLES[5]) == SAMPLES[5]
    assert sanitize("Use {curly braces} freely.") == "Use {curly braces} freely."


def test_empty_input() -> None:
    assert sanitize(None) == ""
    assert sanitize("") == ""
    assert sanitize('```json\n{"tese": "only data"}\n```') == ""


def test_stray_fence_lines_are_removed() -> None:
    assert sanitize("Intro\n```json\nDone") == "Intro\nDone"


@pytest.mark.parametrize("sample", SAMPLES)
def test_sanitize_is_idempotent(sample: str) -> None:
    once = sanitize(sample)
    assert sanitize(once) == once


def test_response_sanitizer_is_callable() -> None:
    sanitizer = ResponseSanitizer()
    assert sanitizer(SAMPLES[0]) == sanitizer.sanitize(SAMPLES[0])
