"""
Newsdesk Editorial Core — Engagement Models
===========================================
Per-(user, item) read accumulators for web articles and short news.
`completed` is a one-way latch; `max_scroll_percent` never decreases.
"""

from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint,
)

from app.core.database import Base
from app.models.tenant import _utcnow, _uuid


class ArticleRead(Base):
    __tablename__ = "article_reads"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    article_id = Column(String(36), ForeignKey("web_articles.id", ondelete="CASCADE"), nullable=False)
    total_time_ms = Column(BigInteger, nullable=False, default=0)
    max_scroll_percent = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    sessions_count = Column(Integer, nullable=False, default=1)
    first_read_at = Column(DateTime(timezone=True), default=_utcnow)
    last_event_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "article_id", name="uq_article_reads_user_article"),
    )


class ShortNewsRead(Base):
    __tablename__ = "short_news_reads"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    short_news_id = Column(String(36), ForeignKey("short_news.id", ondelete="CASCADE"), nullable=False)
    total_time_ms = Column(BigInteger, nullable=False, default=0)
    max_scroll_percent = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    sessions_count = Column(Integer, nullable=False, default=1)
    first_read_at = Column(DateTime(timezone=True), default=_utcnow)
    last_event_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "short_news_id", name="uq_short_news_reads_user_item"),
    )
