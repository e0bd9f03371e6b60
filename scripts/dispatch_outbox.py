"""Send pending outbox emails once (for cron hosts without the in-process scheduler)."""

from __future__ import annotations

import argparse

from _bootstrap import load_settings

from sk_tutorial.main import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=50)
    args = parser.parse_args()

    load_settings()
    app = create_app()
    container = app.extensions["sk_tutorial.container"]
    counts = container.outbox_service.dispatch_pending(args.limit)
    print(f"OK: outbox dispatch {counts}")


if __name__ == "__main__":
    main()
