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

from field_visits.database.bootstrap import SCHEMA_PATH, apply_schema, list_tables
from field_visits.database.connection import DBConfig, DatabaseConnection


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    apply_schema(conn, schema_path=SCHEMA_PATH)
    tables = list_tables(conn)
    print(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)})"
    )


if __name__ == "__main__":
    main()
