from __future__ import annotations

import sys
from pathlib import Path

import importlib

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from config import get_settings_module

from cohort_attendance.container import build_container
from cohort_attendance.database.bootstrap import apply_schema, list_tables, provision_base_partitions


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    # Pass --partitions to also create every stream's student and subject tables
    if "--partitions" in sys.argv[1:]:
        container = build_container(db_config=db_config, streams=settings.STREAMS)
        handles = provision_base_partitions(container.router)
        print(f"OK: Provisioned {len(handles)} partitions for {len(container.units.names())} streams")

    print(f"OK: Applied schema.sql -> {target} (tables={len(list_tables(db_config))})")


if __name__ == "__main__":
    main()
