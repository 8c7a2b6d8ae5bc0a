# src/staff_registry/scripts/migrate.py
from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from staff_registry.core.settings import settings

MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def build_config(url: str | None = None) -> Config:
    """Return an Alembic config pointed at the project's migrations folder."""
    cfg = Config(str(MIGRATIONS_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats "%" specially.
    cfg.set_main_option("sqlalchemy.url", (url or settings.database_url_sync).replace("%", "%%"))
    return cfg


def run_upgrade_head() -> None:
    command.upgrade(build_config(), "head")


if __name__ == "__main__":
    run_upgrade_head()
