from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING, IndexModel

from ..core.constants import ATTENDANCE, OUTBOX, PROFILES, STUDENTS, USERS
from ..core.enums import Role
from ..users.service import UserService
from .connection import DatabaseConnection
from .mongo_base import storage_errors

logger = logging.getLogger(__name__)

INDEXES = {
    USERS: [IndexModel([("email", ASCENDING)], unique=True, name="email_unique")],
    STUDENTS: [
        IndexModel([("name", ASCENDING), ("grade", ASCENDING)], name="name_grade"),
        IndexModel([("isActive", ASCENDING), ("createdAt", DESCENDING)], name="active_created"),
    ],
    ATTENDANCE: [
        IndexModel([("studentId", ASCENDING), ("year", ASCENDING)], unique=True, name="student_year_unique"),
        IndexModel([("year", ASCENDING), ("studentGrade", ASCENDING)], name="year_grade"),
    ],
    PROFILES: [IndexModel([("contactNormalized", ASCENDING)], name="contact_normalized")],
    OUTBOX: [
        IndexModel([("dedupeKey", ASCENDING)], unique=True, name="dedupe_key_unique"),
        IndexModel([("status", ASCENDING), ("createdAt", ASCENDING)], name="status_created"),
    ],
}


def ensure_indexes(conn: DatabaseConnection) -> list[str]:
    """Create every collection index. Idempotent; safe to run on each start."""
    created: list[str] = []
    with storage_errors("create indexes"):
        for collection, models in INDEXES.items():
            created += conn.collection(collection).create_indexes(models)
    logger.info("indexes ready db=%s count=%d", conn.name, len(created))
    return created


def list_collections(conn: DatabaseConnection) -> list[str]:
    with storage_errors("list collections"):
        return sorted(conn.db.list_collection_names())


def ensure_demo_users(users: UserService, *, admin_password: str, teacher_password: str) -> int:
    """Create the demo admin and teacher unless they exist. Returns how many were created."""
    created = 0
    if users.ensure_account(name="Admin User", email="admin@sktutorial.com", password=admin_password, role=Role.ADMIN):
        created += 1
    if users.ensure_account(
        name="Teacher User", email="teacher@sktutorial.com", password=teacher_password, role=Role.TEACHER
    ):
        created += 1
    logger.info("demo users ensured (created=%d)", created)
    return created
