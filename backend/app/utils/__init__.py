"""Utils package."""
from app.utils.hashing import normalize_text, short_hash
from app.utils.text_processing import (
    clean_text, count_words, html_to_text, sanitize_html, slugify, trim_words, truncate_text,
)

__all__ = [
    "normalize_text", "short_hash",
    "clean_text", "count_words", "html_to_text", "sanitize_html",
    "slugify", "trim_words", "truncate_text",
]
