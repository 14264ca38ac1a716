from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable
from uuid import uuid4

from sqlalchemy import and_, case, func, literal, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ArticleRead, ShortNews, WebArticle


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    item_id: str
    delta_ms: int
    scroll_percent: int
    ended: bool


@dataclass(frozen=True, slots=True)
class CompletionThresholds:
    min_time_ms: int
    min_scroll_percent: int

    def met(self, total_ms: int, scroll: int) -> bool:
        return total_ms >= self.min_time_ms and scroll >= self.min_scroll_percent


class ReadProgressRepository:
    """Per-(user, item) read accumulators, updated with a single atomic upsert."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _insert(self, model):
        dialect = self.db.bind.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise NotImplementedError(f"upsert not supported on {dialect}")

    @staticmethod
    def _target(model):
        return model.article_id if model is ArticleRead else model.short_news_id

    async def existing_web_article_ids(self, ids: Iterable[str]) -> set[str]:
        wanted = list({i for i in ids if i})
        if not wanted:
            return set()
        rows = await self.db.execute(select(WebArticle.id).where(WebArticle.id.in_(wanted)))
        return set(rows.scalars().all())

    async def existing_short_news_ids(self, ids: Iterable[str]) -> set[str]:
        wanted = list({i for i in ids if i})
        if not wanted:
            return set()
        rows = await self.db.execute(select(ShortNews.id).where(ShortNews.id.in_(wanted)))
        return set(rows.scalars().all())

    async def apply(
        self,
        model,
        *,
        user_id: str,
        update: ProgressUpdate,
        thresholds: CompletionThresholds,
        now: datetime,
    ):
        """Create or accumulate one progress row without a read-modify-write window.

        time is additive, scroll is max(), completed latches, sessions grow on `ended`.
        """
        target = self._target(model)
        seeded_complete = thresholds.met(update.delta_ms, update.scroll_percent)

        stmt = self._insert(model).values(
            {
                model.id: str(uuid4()),
                model.user_id: user_id,
                target: update.item_id,
                model.total_time_ms: update.delta_ms,
                model.max_scroll_percent: update.scroll_percent,
                model.completed: seeded_complete,
                model.completed_at: now if seeded_complete else None,
                model.sessions_count: 1,
                model.first_read_at: now,
                model.last_event_at: now,
            }
        )
        new_total = model.total_time_ms + update.delta_ms
        new_scroll = case(
            (model.max_scroll_percent >= update.scroll_percent, model.max_scroll_percent),
            else_=literal(update.scroll_percent),
        )
        newly_complete = and_(
            new_total >= thresholds.min_time_ms,
            new_scroll >= thresholds.min_scroll_percent,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[model.user_id, target],
            set_={
                "total_time_ms": new_total,
                "max_scroll_percent": new_scroll,
                "completed": or_(model.completed, newly_complete),
                "completed_at": case(
                    (and_(model.completed.is_(False), newly_complete), literal(now, type_=model.completed_at.type)),
                    else_=model.completed_at,
                ),
                "sessions_count": model.sessions_count + (1 if update.ended else 0),
                "last_event_at": literal(now, type_=model.last_event_at.type),
            },
        )
        await self.db.execute(stmt)

        row = await self.db.execute(
            select(model)
            .where(model.user_id == user_id, target == update.item_id)
            .execution_options(populate_existing=True)
        )
        return row.scalar_one()

    async def for_user(self, model, user_id: str, ids: Iterable[str]) -> list:
        wanted = list({i for i in ids if i})
        if not wanted:
            return []
        target = self._target(model)
        rows = await self.db.execute(select(model).where(model.user_id == user_id, target.in_(wanted)))
        return list(rows.scalars().all())

    async def aggregate(self, model, item_id: str) -> dict[str, float]:
        target = self._target(model)
        row = await self.db.execute(
            select(
                func.count(model.id),
                func.coalesce(func.sum(case((model.completed.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(model.total_time_ms), 0),
                func.coalesce(func.avg(model.max_scroll_percent), 0),
            ).where(target == item_id)
        )
        readers, completed, total_time, avg_scroll = row.one()
        return {
            "readers": int(readers or 0),
            "completed_readers": int(completed or 0),
            "total_time_ms": int(total_time or 0),
            "avg_max_scroll_percent": round(float(avg_scroll or 0), 2),
        }
