"""Error taxonomy shared by services, repositories and HTTP handlers."""

from __future__ import annotations

import enum
from typing import Any


class NewsdeskError(Exception):
    code = "newsdesk_error"
    status_code = 400

    def __init__(self, message: str, *, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(NewsdeskError):
    """Missing or malformed input, or a tenant scope that cannot be resolved."""

    code = "VALIDATION_ERROR"
    status_code = 422


class ForbiddenError(NewsdeskError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(NewsdeskError):
    """Absent entity, or one outside the caller's tenant scope."""

    code = "NOT_FOUND"
    status_code = 404


class PersistenceError(NewsdeskError):
    code = "PERSISTENCE_ERROR"
    status_code = 500


class ParseError(NewsdeskError):
    code = "INVALID_JSON"
    status_code = 422


class ProviderErrorKind(str, enum.Enum):
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http"
    MODEL_UNSUPPORTED = "model_unsupported"


class ProviderError(NewsdeskError):
    code = "PROVIDER_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        kind: ProviderErrorKind,
        provider: str = "",
        http_status: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        self.kind = kind
        self.provider = provider
        self.http_status = http_status

    @property
    def fallback_eligible(self) -> bool:
        return self.kind == ProviderErrorKind.MODEL_UNSUPPORTED
