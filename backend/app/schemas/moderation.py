"""Desk moderation request schema."""

from __future__ import annotations

from pydantic import Field

from app.schemas.composition import CamelModel


class StatusUpdateIn(CamelModel):
    status: str = Field(..., min_length=1, max_length=20)
