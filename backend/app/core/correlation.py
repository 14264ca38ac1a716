"""Request/correlation id context shared by the middleware, envelopes and logs."""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from uuid import uuid4

import structlog


request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def new_request_id() -> str:
    return f"req-{uuid4().hex[:20]}"


def new_correlation_id() -> str:
    return f"corr-{uuid4().hex[:20]}"


def get_request_id() -> str:
    return request_id_ctx.get("")


def get_correlation_id() -> str:
    return correlation_id_ctx.get("")


def bind_request_context(headers: Mapping[str, str]) -> tuple[str, str]:
    """Adopt incoming ids (or mint new ones) and bind them for structlog."""
    request_id = headers.get("x-request-id") or new_request_id()
    correlation_id = headers.get("x-correlation-id") or new_correlation_id()
    request_id_ctx.set(request_id)
    correlation_id_ctx.set(correlation_id)
    structlog.contextvars.bind_contextvars(request_id=request_id, correlation_id=correlation_id)
    return request_id, correlation_id


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
    request_id_ctx.set("")
    correlation_id_ctx.set("")
