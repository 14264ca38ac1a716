"""
Newsdesk Editorial Core — Pydantic Schemas
==========================================
Request/Response schemas for the API layer.
"""

from pydantic import BaseModel

from app.schemas.composition import (
    CamelModel,
    CompositionPayload,
    ComposeRequest,
    GeneratedBundle,
)
from app.schemas.moderation import StatusUpdateIn
from app.schemas.read_progress import (
    ReadAggregateOut,
    ReadProgressBatchIn,
    ReadProgressIn,
    ReadProgressOut,
)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "1.0.0"
    database: str = "connected"
    redis: str = "connected"
    ai_providers: list[str] = []
    uptime_seconds: float = 0


__all__ = [
    "CamelModel",
    "CompositionPayload",
    "ComposeRequest",
    "GeneratedBundle",
    "HealthResponse",
    "ReadAggregateOut",
    "ReadProgressBatchIn",
    "ReadProgressIn",
    "ReadProgressOut",
    "StatusUpdateIn",
]
