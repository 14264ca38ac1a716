from __future__ import annotations

import json
import os

os.environ.setdefault("NEWSDESK_APP_SECRET_KEY", "test-secret-key-for-newsdesk-core-0123456789")
os.environ.setdefault("NEWSDESK_POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("NEWSDESK_APP_ENV", "test")

from dataclasses import dataclass  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from typing import Any, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.config import get_settings  # noqa: E402
from app.core.database import Base, build_session_factory  # noqa: E402
from app.core.errors import ProviderError, ProviderErrorKind  # noqa: E402
from app.models import Category, Domain, Language, Reporter, Tenant  # noqa: E402
from app.services.ai_gateway import AIPurpose, GenerationResult, GenerationUsage  # noqa: E402

FIXED_NOW = datetime(2026, 3, 10, 6, 0, tzinfo=timezone.utc)


class FakeCache:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.deleted: list[str] = []

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl=None) -> None:
        self.store[key] = value

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.store.pop(key, None)


class FakeGateway:
    """Replays scripted responses; an exception in the script is raised instead."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    def configured_providers(self) -> list[str]:
        return ["fake"]

    async def generate(self, prompt: str, *, purpose: AIPurpose = AIPurpose.REWRITE, **_: Any) -> GenerationResult:
        self.prompts.append(prompt)
        if not self.responses:
            raise ProviderError("script exhausted", kind=ProviderErrorKind.NETWORK, provider="fake")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return GenerationResult(
            text=item,
            usage=GenerationUsage(
                provider="fake",
                model="fake-1",
                purpose=purpose.value,
                prompt_chars=len(prompt),
                response_chars=len(item),
                total_tokens=42,
            ),
        )


def make_bundle(
    words: int = 40,
    *,
    headline: str = "City council approves budget",
    slug: Optional[str] = "city-council-approves-budget",
    web: bool = True,
    seo: bool = True,
    short: bool = True,
    word: str = "budget",
) -> str:
    paragraph = " ".join([word] * words)
    data: dict[str, Any] = {
        "printArticle": {"headline": headline, "lead": "Lead line", "body": [paragraph]},
    }
    if web:
        data["webArticle"] = {
            "headline": headline,
            "sections": [{"subhead": "Details", "paragraphs": [paragraph]}],
        }
        if seo:
            data["webArticle"]["seo"] = {
                "slug": slug,
                "metaTitle": headline,
                "metaDescription": "Council passes the annual budget.",
                "keywords": ["budget", "council"],
            }
    if short:
        data["shortNews"] = {"h1": "Budget approved", "content": "The council approved the budget today."}
    return json.dumps(data)


@dataclass
class Newsroom:
    tenant: Tenant
    domain: Domain
    language: Language
    category: Category
    reporter: Reporter
    editor: Reporter


@pytest.fixture
def settings():
    return get_settings().model_copy(
        update={
            "article_min_words": 5,
            "article_max_words": 400,
            "default_language_code": "en",
            "newspaper_daily_limit": 2,
            "language_strict_mode": False,
            "ai_provider": "",
            "openai_api_key": "",
            "gemini_api_key": "",
        }
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def seed_newsroom(db, *, ai_rewrite_enabled: bool = True, slug: str = "daily-news") -> Newsroom:
    tenant = Tenant(name="Daily News", slug=slug, ai_rewrite_enabled=ai_rewrite_enabled)
    db.add(tenant)
    await db.flush()
    domain = Domain(tenant_id=tenant.id, host=f"{slug}.example.com", is_primary=True)
    category = Category(tenant_id=tenant.id, slug="politics", name="Politics")
    reporter = Reporter(tenant_id=tenant.id, user_id=f"{slug}-reporter", auto_publish=False)
    editor = Reporter(tenant_id=tenant.id, user_id=f"{slug}-editor", auto_publish=False)
    db.add_all([domain, category, reporter, editor])
    language = await db.get(Language, "lang-en")
    if language is None:
        language = Language(id="lang-en", code="en", name="English")
        db.add(language)
    await db.commit()
    return Newsroom(tenant, domain, language, category, reporter, editor)


@pytest_asyncio.fixture
async def newsroom(db) -> Newsroom:
    return await seed_newsroom(db)
