"""Tolerant parsing of JSON embedded in free-form AI output.

Models wrap JSON in code fences, lead with prose ("Here are the poses:")
or trail off with notes. The parser scans balanced ``[...]`` and ``{...}``
regions in order, honouring string literals and escapes so brackets inside
strings do not break the match, and takes the first region that decodes
(and fits the requested shape, if any).
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator

from pydantic import TypeAdapter, ValidationError

from posegen.errors import AIParseError

_OPENERS = {"[": "]", "{": "}"}
_CLOSERS = {"]", "}"}

_RAW_PREVIEW_CHARS = 200


def _strip_code_fence(raw: str) -> str:
    s = raw.strip()
    if s.startswith("```"):
        s = re.sub(r"^```\w*\n?", "", s)
        s = re.sub(r"\n?```\s*$", "", s)
    return s.strip()


def _match_closing(text: str, start: int) -> int:
    """Index of the delimiter closing text[start], or -1 if unbalanced."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack[-1] != ch:
                return -1
            stack.pop()
            if not stack:
                return i
    return -1


def _iter_json_regions(text: str) -> Iterator[str]:
    """Yield balanced bracket regions in order of their opening delimiter."""
    pos = 0
    while pos < len(text):
        starts = [i for i in (text.find("[", pos), text.find("{", pos)) if i != -1]
        if not starts:
            return
        start = min(starts)
        end = _match_closing(text, start)
        if end == -1:
            pos = start + 1
            continue
        yield text[start:end + 1]
        pos = end + 1


def _preview(raw: str) -> str:
    if len(raw) <= _RAW_PREVIEW_CHARS:
        return raw
    return raw[:_RAW_PREVIEW_CHARS] + "..."


def _first_match(raw: str, shape: Any) -> tuple[str, Any]:
    """Return (region, data) for the first region that decodes and, with
    ``shape``, validates. Regions that fail are skipped."""
    text = _strip_code_fence(raw or "")
    adapter = TypeAdapter(shape) if shape is not None else None
    last_error: Exception | None = None
    found = False
    for region in _iter_json_regions(text):
        found = True
        try:
            data = json.loads(region)
            if adapter is not None:
                data = adapter.validate_python(data)
        except (json.JSONDecodeError, ValidationError) as e:
            last_error = e
            continue
        return region, data
    if not found:
        raise AIParseError(f"No JSON array or object found in AI output: {_preview(raw or '')!r}", raw=raw or "")
    raise AIParseError(f"Could not parse AI output as JSON: {last_error}", raw=raw or "")


def extract_json_region(raw: str, shape: Any = None) -> str:
    """Return the first balanced region of ``raw`` that decodes as JSON.

    Bracketed prose such as ``[note]`` is passed over. With ``shape`` the
    region must also validate into it.
    """
    region, _ = _first_match(raw, shape)
    return region


def parse_ai_json(raw: str, shape: Any = None) -> Any:
    """Deserialize the JSON embedded in ``raw``.

    With ``shape`` (a pydantic model, or a type such as ``list[Model]``) the
    data is validated into it. Regions are tried in order; the first that
    decodes (and validates) wins. Raises AIParseError carrying ``raw``.
    """
    _, data = _first_match(raw, shape)
    return data
