"""Append this month's unpaid fee entries (same job as PUT /auth/schedule-monthly-entry)."""

from __future__ import annotations

from _bootstrap import load_settings

from sk_tutorial.main import create_app


def main() -> None:
    load_settings()
    app = create_app()
    container = app.extensions["sk_tutorial.container"]
    result = container.fee_service.generate_due_entries()
    print(f"OK: {result['message']} (active={result['totalActiveStudents']})")


if __name__ == "__main__":
    main()
