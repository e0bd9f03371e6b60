from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    The service layer depends on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, *, name: str, email: str, password_hash: str, role: Role) -> str:
        raise NotImplementedError

    def touch_last_login(self, user_id: str, when: datetime) -> None:
        raise NotImplementedError
