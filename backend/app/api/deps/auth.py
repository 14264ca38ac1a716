"""Bearer-token caller resolution. Tokens come from the external auth service."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_access_token
from app.models.user import Caller, UserRole

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def caller_from_claims(claims: dict) -> Caller:
    user_id = str(claims.get("sub") or claims.get("userId") or "").strip()
    if not user_id:
        raise _unauthorized("Token has no subject")
    try:
        role = UserRole(str(claims.get("role") or "").upper())
    except ValueError as exc:
        raise _unauthorized("Unknown role") from exc
    tenant_id = claims.get("tenant_id") or claims.get("tenantId")
    return Caller(user_id=user_id, role=role, tenant_id=str(tenant_id) if tenant_id else None)


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Caller:
    if credentials is None:
        raise _unauthorized("Missing bearer token")
    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("Invalid or expired token")
    return caller_from_claims(claims)
