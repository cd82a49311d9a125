"""
Bring the portal database to the current schema and seed staff access.

    python scripts/release.py

Needs DATABASE_URL. Safe to run on every deploy: migrations skip what exists
and the seed never overwrites an existing admin password.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def run_release() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is not set.")
    if (os.environ.get("ENV") or "").strip().lower() == "production" and db_url.startswith("sqlite"):
        raise RuntimeError("SQLite is not allowed for a production release.")

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    print("Upgrading customer portal schema to head", flush=True)
    command.upgrade(cfg, "head")

    from scripts import init_db

    print("Seeding customer permissions, staff roles and admin user", flush=True)
    init_db.seed_only(database_url=db_url)


if __name__ == "__main__":
    run_release()
