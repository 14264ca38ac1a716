"""
Newsdesk Editorial Core — Desk Moderation
=========================================
Moves a persisted newspaper, web or short-news variant between editorial
statuses. Variants outside the caller's tenant are reported as not found.
Publishing a web article stamps `published_at` once; later re-publishes keep
the original date.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, NotFoundError, PersistenceError, ValidationError
from app.core.logging import get_logger
from app.domain.composition.status_policy import can_moderate, moderation_targets
from app.models import ArticleStatus, NewspaperArticle, ShortNews, WebArticle
from app.models.user import EDITORIAL_ROLES, Caller
from app.repositories.article_repository import ArticleRepository

logger = get_logger("services.moderation")

KIND_NEWSPAPER = "newspaper"
KIND_WEB = "web"
KIND_SHORT_NEWS = "short-news"

_MODELS = {KIND_NEWSPAPER: NewspaperArticle, KIND_WEB: WebArticle, KIND_SHORT_NEWS: ShortNews}
_KIND_ALIASES = {
    "newspaper": KIND_NEWSPAPER,
    "print": KIND_NEWSPAPER,
    "web": KIND_WEB,
    "short": KIND_SHORT_NEWS,
    "shortnews": KIND_SHORT_NEWS,
    "short-news": KIND_SHORT_NEWS,
    "short_news": KIND_SHORT_NEWS,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_kind(kind: str) -> str:
    normalized = _KIND_ALIASES.get((kind or "").strip().lower())
    if normalized is None:
        raise ValidationError("Unknown article kind", details={"kind": kind, "allowed": list(_MODELS)})
    return normalized


def parse_status(value: str) -> ArticleStatus:
    try:
        return ArticleStatus((value or "").strip().upper())
    except ValueError:
        raise ValidationError(
            "Unknown status", details={"status": value, "allowed": [s.value for s in ArticleStatus]}
        ) from None


class ModerationService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        repository: Optional[ArticleRepository] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repo = repository or ArticleRepository(db)
        self.clock = clock

    async def update_status(self, caller: Caller, kind: str, item_id: str, status: str) -> dict[str, Any]:
        if caller.role not in EDITORIAL_ROLES:
            raise ForbiddenError("Role cannot moderate articles")
        kind = normalize_kind(kind)
        target = parse_status(status)

        row = await self.repo.get_variant(_MODELS[kind], item_id)
        if row is None:
            raise NotFoundError("Article not found")
        if not caller.is_super_admin:
            tenant_id = await self.repo.caller_tenant_id(caller)
            if tenant_id is None or tenant_id != row.tenant_id:
                logger.info("moderation_scope_denied", kind=kind, item_id=item_id, user_id=caller.user_id)
                raise NotFoundError("Article not found")

        previous = row.status
        if not can_moderate(previous, target):
            raise ValidationError(
                "Invalid status transition",
                details={
                    "from": previous.value,
                    "to": target.value,
                    "allowed": [s.value for s in moderation_targets(previous)],
                },
            )

        now = self.clock()
        try:
            row.status = target
            row.updated_at = now
            if kind == KIND_WEB and target == ArticleStatus.PUBLISHED and row.published_at is None:
                row.published_at = now
                if row.json_ld:
                    row.json_ld = {**row.json_ld, "datePublished": now.isoformat(), "dateModified": now.isoformat()}
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("variant_status_persist_failed", kind=kind, item_id=item_id, error=str(exc))
            raise PersistenceError("Could not update article status") from exc

        logger.info(
            "variant_status_changed",
            kind=kind,
            item_id=item_id,
            tenant_id=row.tenant_id,
            user_id=caller.user_id,
            previous=previous.value,
            status=target.value,
        )
        published_at = getattr(row, "published_at", None)
        return {
            "kind": kind,
            "id": row.id,
            "status": target.value,
            "previousStatus": previous.value,
            "publishedAt": published_at.isoformat() if published_at else None,
            "updatedAt": now.isoformat(),
        }
