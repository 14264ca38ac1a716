"""
Newsdesk Editorial Core — AI Processing Status Tracker
======================================================
Read-only projection of the AI job fields on a base article. Callers outside
the article's tenant get NotFoundError, exactly as if it did not exist.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models import Article
from app.models.user import Caller
from app.repositories.article_repository import ArticleRepository

logger = get_logger("services.status")

QUEUE_KEYS = ("web", "short", "newspaper")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def project_status(article: Article) -> dict[str, Any]:
    queue = article.ai_queue or {}
    return {
        "articleId": article.id,
        "tenantId": article.tenant_id,
        "status": _enum_value(article.status),
        "ai": {
            "aiStatus": _enum_value(article.ai_status),
            "aiMode": _enum_value(article.ai_mode),
            "aiStartedAt": _iso(article.ai_started_at),
            "aiFinishedAt": _iso(article.ai_finished_at),
            "aiError": article.ai_error,
            "aiSkipReason": article.ai_skip_reason,
            "queue": {key: bool(queue.get(key, False)) for key in QUEUE_KEYS},
            "outputs": {
                "webArticleId": article.web_article_id,
                "shortNewsId": article.short_news_id,
                "newspaperArticleId": article.newspaper_article_id,
            },
        },
        "createdAt": _iso(article.created_at),
        "updatedAt": _iso(article.updated_at),
    }


class StatusTracker:
    def __init__(self, db: AsyncSession, repository: Optional[ArticleRepository] = None) -> None:
        self.repo = repository or ArticleRepository(db)

    async def get_status(self, article_id: str, caller: Caller) -> dict[str, Any]:
        article = await self.repo.get_article(article_id)
        if article is None:
            raise NotFoundError("Article not found")
        if not caller.is_super_admin:
            tenant_id = await self.repo.caller_tenant_id(caller)
            if tenant_id is None or tenant_id != article.tenant_id:
                logger.info("status_scope_denied", article_id=article_id, user_id=caller.user_id)
                raise NotFoundError("Article not found")
        return project_status(article)
