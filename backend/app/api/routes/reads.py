from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps.auth import get_current_caller
from app.api.deps.rbac import require_roles
from app.api.deps.services import get_read_progress_service
from app.api.envelope import success_envelope
from app.core.errors import ValidationError
from app.models.user import COMPOSER_ROLES, Caller
from app.schemas.read_progress import ReadProgressBatchIn
from app.services.read_progress_service import KIND_ARTICLE, KIND_SHORT_NEWS, ReadProgressService

router = APIRouter(prefix="/reads", tags=["Reads"])

MAX_STATUS_IDS = 100


def _split_ids(raw: list[str]) -> list[str]:
    ids: list[str] = []
    for chunk in raw:
        ids.extend(part.strip() for part in chunk.split(",") if part.strip())
    return list(dict.fromkeys(ids))


async def _record(body: ReadProgressBatchIn, caller: Caller, service: ReadProgressService, kind: str):
    items = body.items()
    if not items:
        raise ValidationError("articleId or reads[] is required")
    return success_envelope(await service.record_progress(caller.user_id, items, kind=kind))


@router.post("/articles/progress")
async def record_article_progress(
    body: ReadProgressBatchIn,
    caller: Caller = Depends(get_current_caller),
    service: ReadProgressService = Depends(get_read_progress_service),
):
    return await _record(body, caller, service, KIND_ARTICLE)


@router.post("/short-news/progress")
async def record_short_news_progress(
    body: ReadProgressBatchIn,
    caller: Caller = Depends(get_current_caller),
    service: ReadProgressService = Depends(get_read_progress_service),
):
    return await _record(body, caller, service, KIND_SHORT_NEWS)


@router.get("/articles/status")
async def get_article_read_status(
    ids: list[str] = Query(default=[]),
    caller: Caller = Depends(get_current_caller),
    service: ReadProgressService = Depends(get_read_progress_service),
):
    """Progress of the caller for each id; unread ids map to null."""
    wanted = _split_ids(ids)
    if len(wanted) > MAX_STATUS_IDS:
        raise ValidationError(f"At most {MAX_STATUS_IDS} ids per request")
    return success_envelope(await service.status_for(caller.user_id, wanted))


@router.get("/articles/{article_id}/aggregate")
async def get_article_read_aggregate(
    article_id: str,
    caller: Caller = Depends(require_roles(*COMPOSER_ROLES)),
    service: ReadProgressService = Depends(get_read_progress_service),
):
    return success_envelope(await service.aggregate(article_id))
