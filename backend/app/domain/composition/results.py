"""Typed outcomes of one composition invocation."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from app.models.article import ArticleStatus


class CompositionErrorCode(str, enum.Enum):
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    INVALID_JSON = "INVALID_JSON"
    MISSING_BODY = "MISSING_BODY"
    MISSING_SEO_BLOCK = "MISSING_SEO_BLOCK"
    LANGUAGE_MISMATCH = "LANGUAGE_MISMATCH"
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"
    PROVIDER_ERROR = "PROVIDER_ERROR"


class CompositionWarning(str, enum.Enum):
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    LENGTH_OUT_OF_RANGE = "LENGTH_OUT_OF_RANGE"


@dataclass(slots=True)
class ComposedOutputs:
    newspaper_article_id: Optional[str] = None
    web_article_id: Optional[str] = None
    short_news_id: Optional[str] = None

    def as_dict(self) -> dict[str, Optional[str]]:
        return {
            "newspaperArticleId": self.newspaper_article_id,
            "webArticleId": self.web_article_id,
            "shortNewsId": self.short_news_id,
        }


@dataclass(slots=True)
class Composed:
    """All applicable variants were persisted."""

    article_id: str
    tenant_id: str
    status: ArticleStatus
    outputs: ComposedOutputs
    warnings: list[CompositionWarning] = field(default_factory=list)
    trace: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Degraded:
    """Only the base submission was persisted; the AI stage failed softly."""

    article_id: str
    tenant_id: str
    error_code: CompositionErrorCode
    detail: Optional[str] = None
    trace: list[str] = field(default_factory=list)


CompositionResult = Union[Composed, Degraded]


def result_payload(result: CompositionResult) -> dict[str, Any]:
    if isinstance(result, Composed):
        return {
            "articleId": result.article_id,
            "tenantId": result.tenant_id,
            "status": result.status.value,
            "outputs": result.outputs.as_dict(),
            "warnings": [warning.value for warning in result.warnings],
        }
    return {
        "articleId": result.article_id,
        "tenantId": result.tenant_id,
        "status": "ACCEPTED",
        "errorCode": result.error_code.value,
        "detail": result.detail,
    }
