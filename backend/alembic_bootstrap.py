#!/usr/bin/env python3
"""Alembic bootstrap for databases shared with the main trade application.

If the core trade tables already exist but alembic_version is missing, stamp
the core revision so that upgrades only add the factory messaging schema.
"""

from __future__ import annotations

import os
import subprocess

from sqlalchemy import inspect

from app.database import engine


BASELINE_REVISION = os.getenv("ALEMBIC_BASELINE_REVISION", "001")
CORE_TABLES = ("users", "suppliers", "purchase_orders")


def main() -> int:
    inspector = inspect(engine)
    has_alembic_version = inspector.has_table("alembic_version")
    has_core_schema = all(inspector.has_table(table) for table in CORE_TABLES)

    if not has_alembic_version and has_core_schema:
        print(
            "Existing trade schema detected without alembic_version. "
            f"Stamping baseline: {BASELINE_REVISION}"
        )
        subprocess.run(["alembic", "stamp", BASELINE_REVISION], check=True)
    else:
        print("Alembic bootstrap check: no baseline stamp required")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
