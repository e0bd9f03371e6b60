from __future__ import annotations

import importlib
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


def load_settings(*, scheduler: bool = False):
    load_dotenv(override=False)
    if not scheduler:
        # one-shot scripts must not start the background jobs
        os.environ["SCHEDULER_ENABLED"] = "0"
    from config import get_settings_module

    return importlib.import_module(get_settings_module())
