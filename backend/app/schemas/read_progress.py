"""Read/engagement progress request and response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from app.schemas.composition import CamelModel


class ReadProgressIn(CamelModel):
    article_id: str = Field(..., min_length=1)
    delta_time_ms: float = 0
    max_scroll_percent: float = 0
    ended: bool = False

    @model_validator(mode="before")
    @classmethod
    def accept_short_news_id(cls, data):
        if isinstance(data, dict) and not (data.get("articleId") or data.get("article_id")):
            alias = data.get("shortNewsId") or data.get("short_news_id")
            if alias:
                data = {**data, "articleId": alias}
        return data


class ReadProgressBatchIn(CamelModel):
    """Single update (flat fields) or a batch under `reads`."""

    reads: list[ReadProgressIn] = Field(default_factory=list)
    article_id: Optional[str] = None
    short_news_id: Optional[str] = None
    delta_time_ms: float = 0
    max_scroll_percent: float = 0
    ended: bool = False

    def items(self) -> list[ReadProgressIn]:
        if self.reads:
            return list(self.reads)
        target = self.article_id or self.short_news_id
        if not target:
            return []
        return [
            ReadProgressIn(
                article_id=target,
                delta_time_ms=self.delta_time_ms,
                max_scroll_percent=self.max_scroll_percent,
                ended=self.ended,
            )
        ]


class ReadProgressOut(CamelModel):
    article_id: str
    kind: str = "article"
    total_time_ms: int
    max_scroll_percent: int
    completed: bool
    completed_at: Optional[datetime] = None
    sessions_count: int
    last_event_at: Optional[datetime] = None


class ReadAggregateOut(CamelModel):
    article_id: str
    readers: int
    completed_readers: int
    total_time_ms: int
    avg_max_scroll_percent: float
