from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.constants import USERS
from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mongo_base import storage_errors, try_object_id
from .model import User
from .repository import UserRepository


def _to_user(doc: dict) -> User:
    return User(
        user_id=str(doc["_id"]),
        name=doc.get("name") or "",
        email=doc["email"],
        password_hash=doc.get("password") or "",
        role=Role(doc["role"]),
        is_active=bool(doc.get("isActive", True)),
        last_login=doc.get("lastLogin"),
        created_at=doc.get("createdAt"),
    )


class MongoUserRepository(UserRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _users(self):
        return self._conn.collection(USERS)

    def get_by_id(self, user_id: str) -> Optional[User]:
        oid = try_object_id(user_id)
        if oid is None:
            return None
        with storage_errors("load user"):
            doc = self._users.find_one({"_id": oid})
        return _to_user(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[User]:
        with storage_errors("load user"):
            doc = self._users.find_one({"email": email.strip().lower()})
        return _to_user(doc) if doc else None

    def create_user(self, *, name: str, email: str, password_hash: str, role: Role) -> str:
        now = datetime.utcnow()
        with storage_errors("create user"):
            result = self._users.insert_one(
                {
                    "name": name,
                    "email": email.strip().lower(),
                    "password": password_hash,
                    "role": role.value,
                    "isActive": True,
                    "createdAt": now,
                    "updatedAt": now,
                    "lastLogin": None,
                }
            )
        return str(result.inserted_id)

    def touch_last_login(self, user_id: str, when: datetime) -> None:
        oid = try_object_id(user_id)
        if oid is None:
            return
        with storage_errors("update last login"):
            self._users.update_one({"_id": oid}, {"$set": {"lastLogin": when}})
