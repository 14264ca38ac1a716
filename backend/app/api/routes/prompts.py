from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.rbac import require_roles
from app.api.deps.services import get_prompt_service
from app.api.envelope import success_envelope
from app.core.database import get_db
from app.models.user import Caller, UserRole
from app.services.prompt_service import PromptService

router = APIRouter(prefix="/prompts", tags=["Prompts"])


class PromptUpdateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=50000)
    description: Optional[str] = Field(default=None, max_length=1000)


@router.get("/{key}")
async def get_prompt(
    key: str,
    _: Caller = Depends(require_roles(UserRole.SUPER_ADMIN)),
    db: AsyncSession = Depends(get_db),
    prompts: PromptService = Depends(get_prompt_service),
):
    content = await prompts.resolve(db, key)
    return success_envelope(
        {"key": key, "content": content, "isDefault": content == prompts.default_for(key)}
    )


@router.put("/{key}")
async def update_prompt(
    key: str,
    body: PromptUpdateRequest,
    _: Caller = Depends(require_roles(UserRole.SUPER_ADMIN)),
    db: AsyncSession = Depends(get_db),
    prompts: PromptService = Depends(get_prompt_service),
):
    prompt = await prompts.save(db, key, body.content, body.description)
    return success_envelope(
        {
            "key": prompt.key,
            "content": prompt.content,
            "description": prompt.description,
            "updatedAt": prompt.updated_at.isoformat() if prompt.updated_at else None,
        }
    )
