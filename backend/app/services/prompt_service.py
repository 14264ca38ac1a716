"""
Newsdesk Editorial Core — Prompt Template Resolver
==================================================
Named prompt templates live in the `prompts` table (admin editable) and
fall back to the defaults below. Rendering is literal placeholder
substitution for `{{name}}` and `{name}`; unknown placeholders stay as-is.
"""

from __future__ import annotations

import json
import re
from datetime import timedelta
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.repositories.prompt_repository import PromptRepository
from app.services.cache_service import CacheService, cache_service

logger = get_logger("services.prompt_service")

WEB_ARTICLE_PROMPT_KEY = "ai_web_article_json"

DEFAULT_PROMPTS: dict[str, str] = {
    WEB_ARTICLE_PROMPT_KEY: """You are a senior news editor for a regional multi-language newsroom.
Rewrite the reporter submission below into publication-ready news in language "{{LANGUAGE_CODE}}".
Rules:
- Use only facts present in the submission. Never invent names, numbers, quotes or dates.
- Neutral, objective tone. Inverted pyramid.
- The web article body must be between {{MIN_WORDS}} and {{MAX_WORDS}} words.
- The short news content must not exceed {{SHORT_MAX_WORDS}} words; its h1 must be at most {{SHORT_TITLE_MAX_CHARS}} characters.
- Output exactly one JSON object and nothing else, with these keys:
{
  "print_article": {"headline": "", "subtitle": "", "lead": "", "body": ["paragraph"], "highlights": ["point"]},
  "web_article": {
    "headline": "", "lead": "",
    "sections": [{"subhead": "", "paragraphs": ["paragraph"]}],
    "seo": {"slug": "", "meta_title": "", "meta_description": "", "keywords": [""]}
  },
  "short_mobile_article": {"h1": "", "h2": "", "content": ""}
}

Context:
tenant: {{TENANT_ID}}
author: {{AUTHOR_ID}}
categories: {{CATEGORY_IDS}}
images: {{IMAGE_URLS}}
publish_ready: {{IS_PUBLISHED}}

Submission title: {{TITLE}}
Submission content:
{{RAW_CONTENT}}

Submission JSON:
{{RAW_JSON}}
""",
}


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}|\{(\w+)\}")


def render(template: str, variables: Mapping[str, Any]) -> str:
    """Substitute `{{name}}` / `{name}` in one pass. Inserted text is never rescanned."""
    values = {str(key): value for key, value in variables.items()}

    def _replace(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name not in values:
            return match.group(0)
        return _stringify(values[name])

    return _PLACEHOLDER_RE.sub(_replace, template or "")


class PromptService:
    """Resolve prompt templates from the database with a short Redis cache."""

    def __init__(self, cache: Optional[CacheService] = None, ttl_seconds: Optional[int] = None):
        self._cache = cache or cache_service
        self._ttl = timedelta(seconds=ttl_seconds or get_settings().prompt_cache_ttl_seconds)

    @staticmethod
    def default_for(key: str) -> str:
        return DEFAULT_PROMPTS.get(key, "")

    async def resolve(self, db: AsyncSession, key: str) -> str:
        cache_key = f"prompt:{key}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached if cached.strip() else self.default_for(key)

        prompt = await PromptRepository(db).get(key)
        content = (prompt.content if prompt else "") or ""
        await self._cache.set(cache_key, content, ttl=self._ttl)
        if not content.strip():
            logger.info("prompt_default_used", key=key)
            return self.default_for(key)
        return content

    async def save(self, db: AsyncSession, key: str, content: str, description: Optional[str] = None):
        prompt = await PromptRepository(db).upsert(key, content, description)
        await db.commit()
        await self._cache.delete(f"prompt:{key}")
        logger.info("prompt_saved", key=key, chars=len(content))
        return prompt

    async def resolve_and_render(self, db: AsyncSession, key: str, variables: Mapping[str, Any]) -> str:
        return render(await self.resolve(db, key), variables)
