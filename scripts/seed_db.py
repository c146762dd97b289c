from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dotenv import load_dotenv

from config import get_settings_module

from field_visits.container import build_container
from field_visits.main import seed_if_empty


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    container = build_container(db_config=db_config, jwt_secret=getattr(settings, "JWT_SECRET", settings.SECRET_KEY))

    created = seed_if_empty(container)
    if not created:
        print("Employees already present; nothing seeded.")
        return
    print(f"OK: Seeded {len(created)} employees -> {db_config.get('database')}")
    for employee in created:
        print(f"  {employee.employee_id:<14} {employee.designation}")


if __name__ == "__main__":
    main()
