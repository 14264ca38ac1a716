"""Lenient JSON extraction from noisy LLM output (prose, fences, trailing notes)."""

from __future__ import annotations

import json
import re
from typing import Any

from app.core.errors import ParseError


_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_CLOSERS = {"{": "}", "[": "]"}


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if not value.startswith("```"):
        return value
    value = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", value)
    value = re.sub(r"\s*```$", "", value)
    return value.strip()


def _sanitize_controls(text: str) -> str:
    return _CONTROL_CHARS_RE.sub("", (text or "").replace("\ufeff", ""))


def _try_loads(text: str) -> tuple[bool, Any]:
    if not text:
        return False, None
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        pass
    repaired = text.replace("“", '"').replace("”", '"')
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    if repaired == text:
        return False, None
    try:
        return True, json.loads(repaired)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _outer_slice(text: str, opening: str) -> str:
    start = text.find(opening)
    end = text.rfind(_CLOSERS[opening])
    if start < 0 or end <= start:
        return ""
    return text[start : end + 1]


def find_top_level_regions(text: str) -> list[tuple[int, int, str]]:
    """Return (start, end, opener) for every balanced top-level {...} / [...] region.

    Braces inside string literals are ignored; a mismatched closer discards the
    region being scanned.
    """
    regions: list[tuple[int, int, str]] = []
    stack: list[str] = []
    start = -1
    in_string = False
    escape = False
    for idx, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            if stack:
                in_string = True
            continue
        if ch in _CLOSERS:
            if not stack:
                start = idx
            stack.append(ch)
            continue
        if ch in "}]":
            if not stack:
                continue
            if _CLOSERS[stack[-1]] != ch:
                stack.clear()
                start = -1
                continue
            stack.pop()
            if not stack and start >= 0:
                regions.append((start, idx + 1, text[start]))
                start = -1
    return regions


def extract_json(text: str) -> Any:
    """Extract the JSON object or array embedded in `text`.

    Tries, in order: a direct parse after stripping code fences, the span
    between the first opening and last closing bracket, then the largest
    balanced top-level region (objects win over arrays).
    Raises ParseError when nothing parses.
    """
    value = _strip_code_fences(text)
    if not value:
        raise ParseError("empty_json_payload")

    ok, data = _try_loads(value)
    if ok and isinstance(data, (dict, list)):
        return data

    for opening in ("{", "["):
        ok, data = _try_loads(_outer_slice(value, opening))
        if ok and isinstance(data, (dict, list)):
            return data

    cleaned = _sanitize_controls(value)
    regions = find_top_level_regions(cleaned)
    regions.sort(key=lambda item: (item[2] != "{", -(item[1] - item[0])))
    for start, end, _opener in regions:
        ok, data = _try_loads(cleaned[start:end])
        if ok:
            return data

    raise ParseError("no_json_region", details={"length": len(text or "")})


def extract_json_object(text: str) -> dict[str, Any]:
    data = extract_json(text)
    if isinstance(data, list):
        objects = [item for item in data if isinstance(item, dict)]
        if len(objects) == 1:
            return objects[0]
        raise ParseError("json_root_must_be_object")
    return data
