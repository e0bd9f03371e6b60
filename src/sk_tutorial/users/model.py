from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: staff account (admin or teacher).

    Plain data object, no database access.
    """

    user_id: str
    name: str
    email: str
    password_hash: str
    role: Role
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_public(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "isActive": self.is_active,
            "lastLogin": self.last_login,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class TokenClaims:
    """What a verified bearer token tells us about the caller."""

    user_id: str
    email: str
    role: Role
    name: str
