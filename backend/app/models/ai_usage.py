"""Token/char accounting for every AI provider call."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.core.database import Base
from app.models.tenant import _utcnow, _uuid


class AiUsageEvent(Base):
    __tablename__ = "ai_usage_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id", ondelete="CASCADE"), nullable=True, index=True)
    tenant_id = Column(String(36), nullable=True)
    provider = Column(String(20), nullable=False)
    model = Column(String(80), nullable=False)
    purpose = Column(String(40), nullable=False)
    prompt_tokens = Column(Integer, nullable=True)
    completion_tokens = Column(Integer, nullable=True)
    total_tokens = Column(Integer, nullable=True)
    prompt_chars = Column(Integer, nullable=False, default=0)
    response_chars = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
