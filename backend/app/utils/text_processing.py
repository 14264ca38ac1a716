"""
Newsdesk Editorial Core — Text Processing Utilities
===================================================
HTML sanitization, plain-text extraction, word counting and slugs.
Every generated string is treated as untrusted input.
"""

import re
import unicodedata
from typing import Optional

import bleach
from bs4 import BeautifulSoup

from app.utils.hashing import short_hash

ALLOWED_TAGS = [
    "p", "h1", "h2", "h3", "ul", "ol", "li", "strong", "em",
    "a", "figure", "img", "figcaption",
]
ALLOWED_ATTRS = {
    "a": ["href"],
    "img": ["src", "alt", "loading"],
}
ALLOWED_PROTOCOLS = ["http", "https"]


def sanitize_html(value: str) -> str:
    """Allow-list sanitizer for generated article HTML."""
    if not value:
        return ""
    value = re.sub(r'<(script|style)[^>]*>.*?</\1>', '', value, flags=re.DOTALL | re.IGNORECASE)
    cleaned = bleach.clean(
        value,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRS,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    )
    return cleaned.strip()


def html_to_text(value: str) -> str:
    if not value:
        return ""
    soup = BeautifulSoup(value, "html.parser")
    return soup.get_text(" ", strip=True)


def clean_text(text: Optional[str]) -> str:
    """Strip tags and collapse whitespace in a single field."""
    if not text:
        return ""
    text = html_to_text(text) if "<" in text else text
    text = text.replace('\x00', '')
    return re.sub(r'\s+', ' ', text).strip()


def truncate_text(text: str, max_length: int = 500) -> str:
    """Hard cap at max_length characters."""
    if not text or len(text) <= max_length:
        return text or ""
    return text[:max_length].rstrip()


def count_words(text: str) -> int:
    """Whitespace word count (script independent)."""
    if not text:
        return 0
    return len(text.split())


def trim_words(text: str, max_words: int) -> str:
    if not text:
        return ""
    words = text.split()
    return " ".join(words[:max_words])


def _is_slug_char(ch: str) -> bool:
    return unicodedata.category(ch)[0] in ("L", "M", "N")


def slugify(text: str, max_length: int = 120) -> str:
    """Kebab-case slug. Non-Latin scripts keep their letters and marks; empty input hashes."""
    value = unicodedata.normalize("NFKC", text or "").lower()
    value = "".join(ch if _is_slug_char(ch) else " " for ch in value)
    value = re.sub(r"\s+", "-", value.strip())
    if len(value) > max_length:
        value = value[:max_length].rstrip("-")
    if not value:
        return f"story-{short_hash(text or 'empty')}"
    return value
