"""
Newsdesk Editorial Core — Article Models
========================================
One base article per submission (raw content plus the AI job fields) and
the three derived artifacts that point back to it:
newspaper (print), web, and short news.

AI job lifecycle: PENDING → PROCESSING → DONE | FAILED
"""

import enum

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, JSON, String, Text,
    UniqueConstraint,
)

from app.core.database import Base
from app.models.tenant import _utcnow, _uuid


# ── Enums ──

class ArticleStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class AiStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    FAILED = "FAILED"


class AiMode(str, enum.Enum):
    FULL = "FULL"
    LIMITED = "LIMITED"


def _enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, native_enum=False, length=20)


# ── Models ──

class Article(Base):
    """Base submission record. Raw fields are written once; only status fields change."""
    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    domain_id = Column(String(36), ForeignKey("domains.id"), nullable=True)
    language_id = Column(String(36), ForeignKey("languages.id"), nullable=True)
    language_code = Column(String(10), nullable=False, default="te")
    author_id = Column(String(64), nullable=False, index=True)

    # Raw submission
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False, default="")
    category_ids = Column(JSON, nullable=False, default=list)
    image_urls = Column(JSON, nullable=False, default=list)
    raw = Column(JSON, nullable=True)
    publish_ready = Column(Boolean, nullable=False, default=False)
    status = Column(_enum(ArticleStatus, "article_status"), nullable=False, default=ArticleStatus.PENDING)

    # AI job
    ai_status = Column(_enum(AiStatus, "ai_status"), nullable=False, default=AiStatus.PENDING)
    ai_mode = Column(_enum(AiMode, "ai_mode"), nullable=True)
    ai_queue = Column(JSON, nullable=False, default=dict)
    ai_started_at = Column(DateTime(timezone=True), nullable=True)
    ai_finished_at = Column(DateTime(timezone=True), nullable=True)
    ai_error = Column(String(120), nullable=True)
    ai_skip_reason = Column(String(120), nullable=True)
    ai_raw = Column(Text, nullable=True)

    # Outputs
    web_article_id = Column(String(36), nullable=True)
    short_news_id = Column(String(36), nullable=True)
    newspaper_article_id = Column(String(36), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Article {self.id} ai={self.ai_status}>"


class NewspaperArticle(Base):
    """Print-oriented variant."""
    __tablename__ = "newspaper_articles"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    base_article_id = Column(String(36), ForeignKey("articles.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(String(64), nullable=False)
    language_code = Column(String(10), nullable=False)

    headline = Column(String(500), nullable=False)
    subtitle = Column(String(500), nullable=True)
    lead = Column(Text, nullable=True)
    dateline = Column(String(200), nullable=True)
    body = Column(JSON, nullable=False, default=list)
    highlights = Column(JSON, nullable=False, default=list)

    state = Column(String(120), nullable=True)
    district = Column(String(120), nullable=True)
    mandal = Column(String(120), nullable=True)
    village = Column(String(120), nullable=True)
    place_name = Column(String(200), nullable=True)

    word_count = Column(Integer, nullable=False, default=0)
    char_count = Column(Integer, nullable=False, default=0)
    status = Column(_enum(ArticleStatus, "article_status"), nullable=False, default=ArticleStatus.PENDING)
    view_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_newspaper_articles_author_created", "author_id", "created_at"),
        Index("ix_newspaper_articles_base", "base_article_id"),
    )


class WebArticle(Base):
    """Web variant. Upserted on (tenant, domain, language, slug)."""
    __tablename__ = "web_articles"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    domain_id = Column(String(36), ForeignKey("domains.id"), nullable=True)
    language_id = Column(String(36), ForeignKey("languages.id"), nullable=True)
    base_article_id = Column(String(36), ForeignKey("articles.id", ondelete="SET NULL"), nullable=True)
    author_id = Column(String(64), nullable=False)

    slug = Column(String(160), nullable=False)
    title = Column(String(500), nullable=False)
    lead = Column(Text, nullable=True)
    meta_title = Column(String(160), nullable=True)
    meta_description = Column(String(320), nullable=True)
    keywords = Column(JSON, nullable=False, default=list)

    content_html = Column(Text, nullable=False, default="")
    content_json = Column(JSON, nullable=False, default=list)
    plain_text = Column(Text, nullable=False, default="")
    json_ld = Column(JSON, nullable=True)
    canonical_url = Column(String(1024), nullable=True)
    cover_image_url = Column(String(1024), nullable=True)

    status = Column(_enum(ArticleStatus, "article_status"), nullable=False, default=ArticleStatus.PENDING)
    published_at = Column(DateTime(timezone=True), nullable=True)
    view_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "domain_id", "language_id", "slug",
            name="uq_web_articles_scope_slug",
            postgresql_nulls_not_distinct=True,
        ),
    )


class ShortNews(Base):
    """Mobile short-news variant (about 60 words)."""
    __tablename__ = "short_news"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    base_article_id = Column(String(36), ForeignKey("articles.id", ondelete="SET NULL"), nullable=True)
    author_id = Column(String(64), nullable=False)
    language_code = Column(String(10), nullable=False)
    category_id = Column(String(36), nullable=True)

    title = Column(String(200), nullable=False)
    subtitle = Column(String(300), nullable=True)
    content = Column(Text, nullable=False, default="")
    word_count = Column(Integer, nullable=False, default=0)
    status = Column(_enum(ArticleStatus, "article_status"), nullable=False, default=ArticleStatus.PENDING)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
