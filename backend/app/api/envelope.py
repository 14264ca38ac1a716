"""Uniform `{ok, data, error, meta}` response bodies."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse

from app.core.correlation import get_correlation_id, get_request_id
from app.core.errors import NewsdeskError


def response_meta(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "request_id": get_request_id() or None,
        "correlation_id": get_correlation_id() or None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        meta.update(extra)
    return meta


def _envelope(*, ok: bool, data: Any, error: dict[str, Any] | None, status_code: int, meta) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": ok, "data": data, "error": error, "meta": response_meta(meta)},
    )


def success_envelope(data: Any, *, status_code: int = 200, meta: dict[str, Any] | None = None) -> JSONResponse:
    return _envelope(ok=True, data=data, error=None, status_code=status_code, meta=meta)


def error_envelope(
    *,
    code: str,
    message: str,
    status_code: int = 400,
    details: Any = None,
    meta: dict[str, Any] | None = None,
) -> JSONResponse:
    error = {"code": code, "message": message, "details": details}
    return _envelope(ok=False, data=None, error=error, status_code=status_code, meta=meta)


def envelope_for_error(exc: NewsdeskError, *, path: str | None = None) -> JSONResponse:
    return error_envelope(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        meta={"path": path} if path else None,
    )
