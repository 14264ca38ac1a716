"""
Newsdesk Editorial Core — Security Module
=========================================
JWT handling for caller identity. Tokens are issued by the external auth
service; this module verifies them and can mint equivalent ones for
tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.core.config import get_settings
from app.models.user import Caller

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 12
CLOCK_SKEW_SECONDS = 30


def create_access_token(caller: Caller, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a token carrying the claims the auth service issues."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": caller.user_id,
        "role": caller.role.value,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)),
    }
    if caller.tenant_id:
        claims["tenant_id"] = caller.tenant_id
    return jwt.encode(claims, get_settings().secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Verified claims, or None for a bad signature, expiry or missing `exp`."""
    try:
        return jwt.decode(
            token,
            get_settings().secret_key,
            algorithms=[ALGORITHM],
            options={"require_exp": True, "leeway": CLOCK_SKEW_SECONDS},
        )
    except JWTError:
        return None
