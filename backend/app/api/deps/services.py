"""Service providers. Long-lived collaborators live on `app.state`."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.services.ai_gateway import AIGateway
from app.services.composition_service import CompositionWorkflow
from app.services.moderation_service import ModerationService
from app.services.prompt_service import PromptService
from app.services.read_progress_service import ReadProgressService
from app.services.status_service import StatusTracker


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_ai_gateway(request: Request) -> AIGateway:
    return request.app.state.ai_gateway


def get_prompt_service(request: Request) -> PromptService:
    return request.app.state.prompt_service


def get_composition_workflow(
    db: AsyncSession = Depends(get_db),
    gateway: AIGateway = Depends(get_ai_gateway),
    prompts: PromptService = Depends(get_prompt_service),
    settings: Settings = Depends(get_app_settings),
) -> CompositionWorkflow:
    return CompositionWorkflow(db, gateway=gateway, prompts=prompts, settings=settings)


def get_status_tracker(db: AsyncSession = Depends(get_db)) -> StatusTracker:
    return StatusTracker(db)


def get_moderation_service(db: AsyncSession = Depends(get_db)) -> ModerationService:
    return ModerationService(db)


def get_read_progress_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ReadProgressService:
    return ReadProgressService(db, settings=settings)
