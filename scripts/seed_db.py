from __future__ import annotations

from _bootstrap import load_settings

from sk_tutorial.database.bootstrap import ensure_demo_users
from sk_tutorial.database.connection import DBConfig, DatabaseConnection
from sk_tutorial.users.mongo_user_repository import MongoUserRepository
from sk_tutorial.users.service import UserService


def main() -> None:
    settings = load_settings()
    conn = DatabaseConnection(DBConfig(uri=settings.MONGODB_URI, database=settings.DB_NAME)).open()
    try:
        created = ensure_demo_users(
            UserService(MongoUserRepository(conn)),
            admin_password=settings.DEMO_ADMIN_PASSWORD,
            teacher_password=settings.DEMO_TEACHER_PASSWORD,
        )
        print(f"OK: demo users ready on {settings.DB_NAME} (created={created})")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
