from __future__ import annotations

from app.models.article import ArticleStatus
from app.models.user import UserRole


def derive_publish_status(role: UserRole, *, auto_publish: bool, publish_ready: bool) -> ArticleStatus:
    """Reporters publish only with autoPublish AND publishReady; editorial roles always publish."""
    if role == UserRole.REPORTER:
        if auto_publish and publish_ready:
            return ArticleStatus.PUBLISHED
        return ArticleStatus.PENDING
    return ArticleStatus.PUBLISHED


# Desk moderation of an already persisted variant.
MODERATION_TRANSITIONS: dict[ArticleStatus, set[ArticleStatus]] = {
    ArticleStatus.DRAFT: {
        ArticleStatus.PENDING, ArticleStatus.PUBLISHED, ArticleStatus.REJECTED, ArticleStatus.ARCHIVED,
    },
    ArticleStatus.PENDING: {
        ArticleStatus.DRAFT, ArticleStatus.PUBLISHED, ArticleStatus.REJECTED, ArticleStatus.ARCHIVED,
    },
    ArticleStatus.PUBLISHED: {ArticleStatus.PENDING, ArticleStatus.ARCHIVED},
    ArticleStatus.REJECTED: {ArticleStatus.DRAFT, ArticleStatus.PENDING, ArticleStatus.ARCHIVED},
    ArticleStatus.ARCHIVED: {ArticleStatus.PENDING, ArticleStatus.PUBLISHED},
}


def moderation_targets(from_status: ArticleStatus) -> list[ArticleStatus]:
    return sorted(MODERATION_TRANSITIONS.get(from_status, set()), key=lambda s: s.value)


def can_moderate(from_status: ArticleStatus, to_status: ArticleStatus) -> bool:
    if from_status == to_status:
        return True
    return to_status in MODERATION_TRANSITIONS.get(from_status, set())
