"""Run the Alembic migrations shipped in ``libs/db/alembic``.

The migration scripts live beside the package in the workspace checkout
(``libs/db/alembic.ini`` and ``libs/db/alembic/``), so this works from a
source tree or an editable install.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from .client import resolve_database_url

DB_LIB_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_INI = DB_LIB_ROOT / "alembic.ini"
SCRIPT_LOCATION = DB_LIB_ROOT / "alembic"


def alembic_config(database_url: str | None = None) -> Config:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    # ConfigParser interpolation: escape '%' in URL-encoded passwords.
    cfg.set_main_option("sqlalchemy.url", resolve_database_url(database_url).replace("%", "%%"))
    cfg.attributes["configure_logger"] = False
    return cfg


def upgrade_database(database_url: str | None = None, *, revision: str = "head") -> None:
    """Bring the schema at ``database_url`` (else ``DATABASE_URL``) up to ``revision``."""

    command.upgrade(alembic_config(database_url), revision)


__all__ = ["alembic_config", "upgrade_database"]
