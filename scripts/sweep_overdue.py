"""Periodic tick for cron: mark visits past their deadline as overdue."""
from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dotenv import load_dotenv

from config import get_settings_module

from field_visits.container import build_container


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        jwt_secret=getattr(settings, "JWT_SECRET", settings.SECRET_KEY),
    )
    updated = container.overdue_sweeper.sweep()
    print(f"OK: marked {updated} visit(s) overdue")


if __name__ == "__main__":
    main()
