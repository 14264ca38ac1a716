from __future__ import annotations

from collections.abc import Iterable

from fastapi import Depends, HTTPException, status

from app.api.deps.auth import get_current_caller
from app.models.user import Caller, UserRole


def enforce_roles(
    caller: Caller,
    allowed: Iterable[UserRole],
    *,
    message: str = "Not authorized for this action",
) -> None:
    if caller.role not in set(allowed):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def require_roles(*allowed: UserRole):
    async def _dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        enforce_roles(caller, allowed)
        return caller

    return _dependency
