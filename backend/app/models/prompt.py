"""Admin-editable prompt templates, keyed by name."""

from sqlalchemy import Column, DateTime, String, Text

from app.core.database import Base
from app.models.tenant import _utcnow, _uuid


class Prompt(Base):
    __tablename__ = "prompts"

    id = Column(String(36), primary_key=True, default=_uuid)
    key = Column(String(100), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
