"""Strip machine-readable leftovers from replies before they are displayed."""

from __future__ import annotations

import re
from typing import List, Tuple

from essaycoach.utils.text import collapse_blank_lines

from .structured_fragment import FENCE_PATTERN, iter_fragments, skeleton_field_for_key

QUOTED_KEY_PATTERN = re.compile(r'"(?P<key>[^"\n]{1,40})"\s*:')
REMNANT_LINE_PATTERN = re.compile(r'^[ \t]*"(?P<key>[^"\n]{1,40})"[ \t]*:[^\n]*(?:\n|$)', re.MULTILINE)
STRAY_FENCE_PATTERN = re.compile(r"^[ \t]*```[ \t]*json[ \t]*(?:\n|$)", re.MULTILINE | re.IGNORECASE)
LONE_BRACE_PATTERN = re.compile(r"^[ \t]*[{}][ \t]*,?[ \t]*(?:\n|$)", re.MULTILINE)


def _mentions_schema_key(fragment: str) -> bool:
    return any(skeleton_field_for_key(match.group("key")) for match in QUOTED_KEY_PATTERN.finditer(fragment))


def _drop_fragments(text: str) -> str:
    fragments = {match.span() for match in iter_fragments(text)}
    if not fragments:
        return text
    return FENCE_PATTERN.sub(lambda match: "" if match.span() in fragments else match.group(0), text)


def _top_level_objects(text: str) -> List[Tuple[int, int]]:
    """Spans of balanced, outermost `{...}` blocks; an unclosed `{` is skipped."""

    spans: List[Tuple[int, int]] = []
    position = 0
    while True:
        start = text.find("{", position)
        if start < 0:
            return spans
        depth = 0
        end = None
        for index in range(start, len(text)):
            if text[index] == "{":
                depth += 1
            elif text[index] == "}":
                depth -= 1
                if depth == 0:
                    end = index + 1
                    break
        if end is None:
            position = start + 1
            continue
        spans.append((start, end))
        position = end


def _drop_loose_objects(text: str) -> str:
    kept: List[str] = []
    cursor = 0
    for start, end in _top_level_objects(text):
        if _mentions_schema_key(text[start:end]):
            kept.append(text[cursor:start])
            cursor = end
    kept.append(text[cursor:])
    return "".join(kept)


def _drop_remnant_lines(text: str) -> str:
    return REMNANT_LINE_PATTERN.sub(
        lambda match: "" if skeleton_field_for_key(match.group("key")) else match.group(0),
        text,
    )


def _sanitize_once(text: str) -> str:
    text = _drop_fragments(text)
    text = _drop_loose_objects(text)
    text = _drop_remnant_lines(text)
    text = STRAY_FENCE_PATTERN.sub("", text)
    text = LONE_BRACE_PATTERN.sub("", text)
    return collapse_blank_lines(text).strip()


def sanitize(text: str | None) -> str:
    """Return display-safe text; repeated calls return the same value."""

    if not text:
        return ""
    current = text
    while True:
        cleaned = _sanitize_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned


class ResponseSanitizer:
    """Object wrapper so the orchestrator can take the sanitizer as a collaborator."""

    def sanitize(self, text: str | None) -> str:
        return sanitize(text)

    __call__ = sanitize


__all__ = ["ResponseSanitizer", "sanitize"]
