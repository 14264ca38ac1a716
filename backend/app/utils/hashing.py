"""
Newsdesk Editorial Core — Hashing Utilities
===========================================
Deterministic short digests for slugs and fingerprints.
"""

import hashlib
import re
import unicodedata


def normalize_text(text: str) -> str:
    """Lowercase, strip combining marks and punctuation, collapse whitespace."""
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text).lower().strip()
    text = re.sub(r'[^\w\s]', '', text)
    return re.sub(r'\s+', ' ', text).strip()


def short_hash(text: str, length: int = 10) -> str:
    """First `length` hex chars of sha1(normalized text)."""
    raw = normalize_text(text) or (text or "")
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:length]
