"""Unicode-block language detection for the scripts the newsroom publishes in."""

from __future__ import annotations

from collections import Counter
from typing import Optional

SCRIPT_RANGES: dict[str, tuple[int, int]] = {
    "hi": (0x0900, 0x097F),  # Devanagari
    "bn": (0x0980, 0x09FF),
    "pa": (0x0A00, 0x0A7F),  # Gurmukhi
    "gu": (0x0A80, 0x0AFF),
    "or": (0x0B00, 0x0B7F),
    "ta": (0x0B80, 0x0BFF),
    "te": (0x0C00, 0x0C7F),
    "kn": (0x0C80, 0x0CFF),
    "ml": (0x0D00, 0x0D7F),
    "ur": (0x0600, 0x06FF),  # Arabic
}

_ALIASES = {
    "telugu": "te",
    "tamil": "ta",
    "kannada": "kn",
    "malayalam": "ml",
    "hindi": "hi",
    "marathi": "mr",
    "bengali": "bn",
    "gujarati": "gu",
    "punjabi": "pa",
    "odia": "or",
    "oriya": "or",
    "urdu": "ur",
    "english": "en",
}

# Languages sharing another language's script.
_SHARED_SCRIPT = {"mr": "hi"}


def normalize_language_code(code: Optional[str], default: str = "te") -> str:
    value = (code or "").strip().lower().replace("_", "-")
    if not value:
        return default
    value = _ALIASES.get(value, value)
    return value.split("-", 1)[0]


def _script_of(ch: str) -> Optional[str]:
    if ("a" <= ch <= "z") or ("A" <= ch <= "Z"):
        return "en"
    point = ord(ch)
    for code, (start, end) in SCRIPT_RANGES.items():
        if start <= point <= end:
            return code
    return None


def script_counts(text: str) -> Counter:
    counts: Counter = Counter()
    for ch in text or "":
        script = _script_of(ch)
        if script:
            counts[script] += 1
    return counts


def detect_language(text: str) -> Optional[str]:
    counts = script_counts(text)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def script_ratio(text: str, code: str) -> float:
    """Share of script-bearing characters that belong to `code`'s script."""
    counts = script_counts(text)
    total = sum(counts.values())
    if total == 0:
        return 0.0
    script = _SHARED_SCRIPT.get(code, code)
    return counts.get(script, 0) / total


def matches_language(text: str, code: str, min_ratio: float = 0.6) -> bool:
    """True when `text` is predominantly written in `code`'s script.

    Languages without a known script range are never rejected.
    """
    normalized = normalize_language_code(code)
    script = _SHARED_SCRIPT.get(normalized, normalized)
    if script != "en" and script not in SCRIPT_RANGES:
        return True
    if not (text or "").strip():
        return False
    return script_ratio(text, normalized) >= min_ratio
