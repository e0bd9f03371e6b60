from __future__ import annotations

from _bootstrap import load_settings

from sk_tutorial.database.bootstrap import ensure_indexes, list_collections
from sk_tutorial.database.connection import DBConfig, DatabaseConnection


def main() -> None:
    settings = load_settings()
    conn = DatabaseConnection(DBConfig(uri=settings.MONGODB_URI, database=settings.DB_NAME)).open()
    try:
        created = ensure_indexes(conn)
        print(f"OK: indexes ready on {settings.DB_NAME} ({len(created)} indexes, collections={list_collections(conn)})")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
