"""Parse the fenced JSON fragment a tutoring reply may carry."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional

from essaycoach.core.stages import Stage

LOGGER = logging.getLogger("essaycoach.structuring.fragment")

FENCE_PATTERN = re.compile(r"```[ \t]*(?P<label>[A-Za-z]*)[ \t]*\n?(?P<body>.*?)```", re.DOTALL)


def skeleton_field_for_key(key: Any) -> Optional[str]:
    """Map a fragment key (``tema``, ``Thesis``, ``conclusão``...) to a skeleton field."""

    stage = Stage.parse(key)
    if stage is None:
        return None
    return stage.field


def iter_fragments(text: str) -> Iterator[re.Match[str]]:
    """Yield fenced blocks that look machine-readable (json label or a ``{`` body)."""

    for match in FENCE_PATTERN.finditer(text or ""):
        label = match.group("label").lower()
        body = match.group("body").strip()
        if label == "json" or (not label and body.startswith("{")):
            yield match


def _coerce_value(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        parts = [item.strip() for item in value.values() if isinstance(item, str) and item.strip()]
        return " ".join(parts)
    if isinstance(value, list):
        parts = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return " ".join(parts)
    return None


class StructuredDataExtractor:
    """Returns a partial skeleton from the first fragment, or ``None``.

    Malformed fragments are an expected outcome, never an error.
    """

    def extract(self, text: str | None) -> Optional[Dict[str, str]]:
        if not text:
            return None
        fragment = next(iter_fragments(text), None)
        if fragment is None:
            return None
        body = fragment.group("body").strip()
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            LOGGER.debug("Discarding malformed structured fragment: %s", exc)
            return None
        if not isinstance(payload, dict):
            LOGGER.debug("Structured fragment root is %s, expected an object", type(payload).__name__)
            return None

        partial: Dict[str, str] = {}
        for key, raw_value in payload.items():
            field_name = skeleton_field_for_key(key)
            if field_name is None:
                continue
            value = _coerce_value(raw_value)
            if value is None:
                continue
            if partial.get(field_name):
                continue
            partial[field_name] = value

        if not any(partial.values()):
            return None
        return partial


__all__ = ["StructuredDataExtractor", "iter_fragments", "skeleton_field_for_key"]
