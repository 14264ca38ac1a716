from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    AiUsageEvent,
    Article,
    Category,
    Domain,
    DomainStatus,
    Language,
    NewspaperArticle,
    Reporter,
    ShortNews,
    Tenant,
    WebArticle,
)
from app.models.user import TENANT_BOUND_ROLES, Caller

Variant = TypeVar("Variant", NewspaperArticle, WebArticle, ShortNews)


class ArticleRepository:
    """Data access for tenants, base articles and their derived variants.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Tenant context ──

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        return await self.db.get(Tenant, tenant_id)

    async def get_domain(self, domain_id: str) -> Domain | None:
        return await self.db.get(Domain, domain_id)

    async def get_primary_domain(self, tenant_id: str) -> Domain | None:
        row = await self.db.execute(
            select(Domain)
            .where(Domain.tenant_id == tenant_id, Domain.status == DomainStatus.ACTIVE)
            .order_by(Domain.is_primary.desc(), Domain.created_at.asc())
            .limit(1)
        )
        return row.scalar_one_or_none()

    async def get_language(self, code: str) -> Language | None:
        row = await self.db.execute(select(Language).where(Language.code == code))
        return row.scalar_one_or_none()

    async def get_reporter(self, user_id: str) -> Reporter | None:
        row = await self.db.execute(select(Reporter).where(Reporter.user_id == user_id))
        return row.scalar_one_or_none()

    async def caller_tenant_id(self, caller: Caller) -> str | None:
        """Tenant of a tenant-bound caller, taken from the reporter profile only.

        The token's `tenant_id` claim is not trusted here; a caller without a
        profile has no tenant.
        """
        if caller.role not in TENANT_BOUND_ROLES:
            return None
        reporter = await self.get_reporter(caller.user_id)
        return reporter.tenant_id if reporter is not None else None

    async def find_category(self, tenant_id: str, ref: str) -> Category | None:
        """Category by id, else by slug (tenant-specific before global)."""
        category = await self.db.get(Category, ref)
        if category is not None:
            return category
        row = await self.db.execute(
            select(Category)
            .where(Category.slug == ref, (Category.tenant_id == tenant_id) | Category.tenant_id.is_(None))
            .order_by(Category.tenant_id.is_(None))
            .limit(1)
        )
        return row.scalar_one_or_none()

    # ── Base article ──

    async def create_base(self, **values: Any) -> Article:
        article = Article(**values)
        self.db.add(article)
        await self.db.flush()
        return article

    async def get_article(self, article_id: str) -> Article | None:
        return await self.db.get(Article, article_id, populate_existing=True)

    # ── Derived variants ──

    async def create_newspaper(self, **values: Any) -> NewspaperArticle:
        row = NewspaperArticle(**values)
        self.db.add(row)
        await self.db.flush()
        return row

    async def find_web_article(
        self,
        *,
        tenant_id: str,
        domain_id: str | None,
        language_id: str | None,
        slug: str,
    ) -> WebArticle | None:
        stmt = select(WebArticle).where(WebArticle.tenant_id == tenant_id, WebArticle.slug == slug)
        stmt = stmt.where(WebArticle.domain_id.is_(None) if domain_id is None else WebArticle.domain_id == domain_id)
        stmt = stmt.where(
            WebArticle.language_id.is_(None) if language_id is None else WebArticle.language_id == language_id
        )
        row = await self.db.execute(stmt.limit(1))
        return row.scalar_one_or_none()

    async def upsert_web_article(
        self,
        *,
        tenant_id: str,
        domain_id: str | None,
        language_id: str | None,
        slug: str,
        values: dict[str, Any],
    ) -> tuple[WebArticle, bool]:
        """Update the article with this (tenant, domain, language, slug) or insert it.

        Returns (row, created).
        """
        existing = await self.find_web_article(
            tenant_id=tenant_id, domain_id=domain_id, language_id=language_id, slug=slug
        )
        if existing is not None:
            for key, value in values.items():
                setattr(existing, key, value)
            await self.db.flush()
            return existing, False

        row = WebArticle(
            tenant_id=tenant_id,
            domain_id=domain_id,
            language_id=language_id,
            slug=slug,
            **values,
        )
        self.db.add(row)
        await self.db.flush()
        return row, True

    async def create_short_news(self, **values: Any) -> ShortNews:
        row = ShortNews(**values)
        self.db.add(row)
        await self.db.flush()
        return row

    async def get_variant(self, model: type[Variant], item_id: str) -> Variant | None:
        return await self.db.get(model, item_id, populate_existing=True)

    async def count_newspaper_articles(self, *, author_id: str, start: datetime, end: datetime) -> int:
        row = await self.db.execute(
            select(func.count(NewspaperArticle.id)).where(
                NewspaperArticle.author_id == author_id,
                NewspaperArticle.created_at >= start,
                NewspaperArticle.created_at < end,
            )
        )
        return int(row.scalar_one() or 0)

    # ── Usage ──

    async def add_usage_events(self, article_id: str, tenant_id: str, usages: Iterable[dict[str, Any]]) -> None:
        for usage in usages:
            self.db.add(
                AiUsageEvent(
                    article_id=article_id,
                    tenant_id=tenant_id,
                    provider=usage["provider"],
                    model=usage["model"],
                    purpose=usage["purpose"],
                    prompt_tokens=usage.get("prompt_tokens"),
                    completion_tokens=usage.get("completion_tokens"),
                    total_tokens=usage.get("total_tokens"),
                    prompt_chars=usage.get("prompt_chars") or 0,
                    response_chars=usage.get("response_chars") or 0,
                )
            )
        await self.db.flush()

    # ── Transaction ──

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
