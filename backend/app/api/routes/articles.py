"""
Newsdesk Editorial Core - Article Composition Routes
===================================================
Structured submission, AI composition, AI status lookups and desk moderation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, status

from app.api.deps.rbac import require_roles
from app.api.deps.services import get_composition_workflow, get_moderation_service, get_status_tracker
from app.api.envelope import success_envelope
from app.core.logging import get_logger
from app.domain.composition.results import Composed, result_payload
from app.models.user import COMPOSER_ROLES, EDITORIAL_ROLES, Caller
from app.schemas.composition import ComposeRequest
from app.schemas.moderation import StatusUpdateIn
from app.services.composition_service import CompositionWorkflow
from app.services.moderation_service import ModerationService
from app.services.status_service import StatusTracker

router = APIRouter(prefix="/articles", tags=["Articles"])
logger = get_logger("routes.articles")


@router.post("/unified")
async def submit_unified_article(
    payload: dict[str, Any] = Body(...),
    caller: Caller = Depends(require_roles(*COMPOSER_ROLES)),
    workflow: CompositionWorkflow = Depends(get_composition_workflow),
):
    """Persist a pre-composed print article with optional web and short variants."""
    result = await workflow.submit_unified(caller, payload)
    return success_envelope(result_payload(result), status_code=status.HTTP_201_CREATED)


@router.post("/ai/compose")
async def compose_article_with_ai(
    request: ComposeRequest,
    caller: Caller = Depends(require_roles(*COMPOSER_ROLES)),
    workflow: CompositionWorkflow = Depends(get_composition_workflow),
):
    """Compose all variants from a raw reporter submission.

    201 when outputs were persisted, 202 when the base article was kept but
    generation degraded (see `errorCode` and the AI status endpoint).
    """
    result = await workflow.compose_with_ai(caller, request)
    code = status.HTTP_201_CREATED if isinstance(result, Composed) else status.HTTP_202_ACCEPTED
    return success_envelope(result_payload(result), status_code=code)


@router.get("/{article_id}/ai-status")
async def get_article_ai_status(
    article_id: str,
    caller: Caller = Depends(require_roles(*COMPOSER_ROLES)),
    tracker: StatusTracker = Depends(get_status_tracker),
):
    return success_envelope(await tracker.get_status(article_id, caller))


@router.patch("/{kind}/{item_id}/status")
async def update_article_status(
    kind: str,
    item_id: str,
    body: StatusUpdateIn,
    caller: Caller = Depends(require_roles(*EDITORIAL_ROLES)),
    moderation: ModerationService = Depends(get_moderation_service),
):
    """Set the status of a newspaper, web or short-news variant (`kind`)."""
    return success_envelope(await moderation.update_status(caller, kind, item_id, body.status))
