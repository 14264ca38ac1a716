"""
Newsdesk Editorial Core — Read Progress Aggregator
==================================================
Accumulates per-user read time and scroll depth for web articles and short
news. Single and batch submissions share one per-item loop; unknown ids are
reported as `missing` while the rest of the batch is applied.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import NotFoundError, PersistenceError
from app.core.logging import get_logger
from app.models import ArticleRead, ShortNewsRead
from app.repositories.read_progress_repository import (
    CompletionThresholds,
    ProgressUpdate,
    ReadProgressRepository,
)
from app.schemas.read_progress import ReadAggregateOut, ReadProgressIn, ReadProgressOut

logger = get_logger("services.read_progress")

KIND_ARTICLE = "article"
KIND_SHORT_NEWS = "short_news"

_MODELS = {KIND_ARTICLE: ArticleRead, KIND_SHORT_NEWS: ShortNewsRead}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: Any, low: float, high: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if math.isnan(number):
        return low
    return max(low, min(high, number))


def present(row, kind: str) -> dict[str, Any]:
    item_id = row.article_id if kind == KIND_ARTICLE else row.short_news_id
    return ReadProgressOut(
        article_id=item_id,
        kind=kind,
        total_time_ms=int(row.total_time_ms or 0),
        max_scroll_percent=int(row.max_scroll_percent or 0),
        completed=bool(row.completed),
        completed_at=row.completed_at,
        sessions_count=int(row.sessions_count or 0),
        last_event_at=row.last_event_at,
    ).model_dump(by_alias=True, mode="json")


class ReadProgressService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        settings: Optional[Settings] = None,
        repository: Optional[ReadProgressRepository] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.repo = repository or ReadProgressRepository(db)
        self.clock = clock

    @property
    def thresholds(self) -> CompletionThresholds:
        return CompletionThresholds(
            min_time_ms=self.settings.read_complete_min_time_ms,
            min_scroll_percent=self.settings.read_complete_scroll_percent,
        )

    def _to_update(self, item: ReadProgressIn) -> ProgressUpdate:
        return ProgressUpdate(
            item_id=item.article_id.strip(),
            delta_ms=int(clamp(item.delta_time_ms, 0, self.settings.read_max_delta_ms)),
            scroll_percent=int(round(clamp(item.max_scroll_percent, 0, 100))),
            ended=bool(item.ended),
        )

    async def _route(self, ids: list[str], kind: str) -> tuple[dict[str, str], list[str]]:
        """Map each id to the store it belongs to; unknown ids are returned as missing."""
        if kind == KIND_SHORT_NEWS:
            found = await self.repo.existing_short_news_ids(ids)
            return {i: KIND_SHORT_NEWS for i in found}, [i for i in ids if i not in found]

        found = await self.repo.existing_web_article_ids(ids)
        routes = {i: KIND_ARTICLE for i in found}
        unresolved = [i for i in ids if i not in found]
        if unresolved:
            for short_id in await self.repo.existing_short_news_ids(unresolved):
                routes[short_id] = KIND_SHORT_NEWS
        return routes, [i for i in ids if i not in routes]

    async def record_progress(
        self,
        user_id: str,
        items: list[ReadProgressIn],
        *,
        kind: str = KIND_ARTICLE,
    ) -> dict[str, Any]:
        updates = [self._to_update(item) for item in items if item.article_id and item.article_id.strip()]
        ids = list(dict.fromkeys(update.item_id for update in updates))
        routes, missing = await self._route(ids, kind)

        now = self.clock()
        results: list[dict[str, Any]] = []
        try:
            for update in updates:
                target_kind = routes.get(update.item_id)
                if target_kind is None:
                    continue
                if target_kind != kind:
                    logger.info("read_progress_redirected", item_id=update.item_id, to=target_kind)
                row = await self.repo.apply(
                    _MODELS[target_kind],
                    user_id=user_id,
                    update=update,
                    thresholds=self.thresholds,
                    now=now,
                )
                results.append(present(row, target_kind))
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("read_progress_persist_failed", user_id=user_id, error=str(exc))
            raise PersistenceError("Could not record read progress") from exc

        logger.info(
            "read_progress_recorded",
            user_id=user_id,
            kind=kind,
            applied=len(results),
            missing=len(missing),
        )
        return {"results": results, "missing": missing}

    async def status_for(self, user_id: str, ids: list[str], *, kind: str = KIND_ARTICLE) -> dict[str, Any]:
        model = _MODELS[kind]
        by_id = {}
        for row in await self.repo.for_user(model, user_id, ids):
            progress = present(row, kind)
            by_id[progress["articleId"]] = progress
        return {item_id: by_id.get(item_id) for item_id in dict.fromkeys(ids) if item_id}

    async def aggregate(self, article_id: str, *, kind: str = KIND_ARTICLE) -> dict[str, Any]:
        exists = (
            await self.repo.existing_web_article_ids([article_id])
            if kind == KIND_ARTICLE
            else await self.repo.existing_short_news_ids([article_id])
        )
        if not exists:
            raise NotFoundError("Article not found")
        stats = await self.repo.aggregate(_MODELS[kind], article_id)
        return ReadAggregateOut(article_id=article_id, **stats).model_dump(by_alias=True)
