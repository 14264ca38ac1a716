"""
Newsdesk Editorial Core — Caller Identity
=========================================
Users live in the external auth service. Requests carry a bearer token
whose claims become a `Caller`; tenant membership comes from the reporter
profile table.
"""

import enum
from dataclasses import dataclass
from typing import Optional


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    ADMIN_EDITOR = "ADMIN_EDITOR"
    NEWS_MODERATOR = "NEWS_MODERATOR"
    DESK_EDITOR = "DESK_EDITOR"
    REPORTER = "REPORTER"
    READER = "READER"


# Roles whose tenant comes from the reporter profile link.
TENANT_BOUND_ROLES = frozenset(
    {
        UserRole.TENANT_ADMIN,
        UserRole.ADMIN_EDITOR,
        UserRole.NEWS_MODERATOR,
        UserRole.DESK_EDITOR,
        UserRole.REPORTER,
    }
)

COMPOSER_ROLES = frozenset({UserRole.SUPER_ADMIN, *TENANT_BOUND_ROLES})

# Roles that may move a published variant between statuses.
EDITORIAL_ROLES = COMPOSER_ROLES - {UserRole.REPORTER}


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: UserRole
    tenant_id: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN
