from __future__ import annotations

import logging
import os
from time import monotonic

from alembic import command
from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect, text

from poolscore.config.db_url import to_sync_url


logger = logging.getLogger("poolscore.database")


def alembic_env_path() -> str:
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "alembic"))


def alembic_ini_path() -> str:
    return os.path.join(alembic_env_path(), "alembic.ini")


def initialize(url: str) -> None:
    """Apply migrations for the store at ``url`` (async URLs are accepted)."""
    upgrade_database(db_url=to_sync_url(url))


def upgrade_database(*, db_url: str) -> None:
    """Run ``alembic upgrade head`` unless the store is already at head."""
    alembic_config = AlembicConfig(alembic_ini_path())
    alembic_config.set_main_option("script_location", alembic_env_path())
    alembic_config.set_main_option("sqlalchemy.url", db_url)
    alembic_config.attributes["configure_logger"] = False

    script_directory = ScriptDirectory.from_config(alembic_config)
    head_revision = script_directory.get_current_head()
    current_revision = _get_database_revision(db_url)

    if head_revision is not None and current_revision == head_revision:
        logger.info({"event": "alembic_upgrade_skip", "revision": current_revision})
        return

    started = monotonic()
    logger.info({"event": "alembic_upgrade_start", "from_revision": current_revision})
    try:
        command.upgrade(alembic_config, "head")
    except Exception as exc:
        logger.error({"event": "alembic_upgrade_error", "error": str(exc)})
        raise
    logger.info({
        "event": "alembic_upgrade_complete",
        "elapsed_seconds": round(monotonic() - started, 3),
    })


def _get_database_revision(db_url: str) -> str | None:
    engine = create_engine(db_url, future=True)
    try:
        with engine.connect() as connection:
            inspector = inspect(connection)
            if "alembic_version" not in inspector.get_table_names():
                return None
            result = connection.execute(text("select version_num from alembic_version limit 1"))
            return result.scalar()
    finally:
        engine.dispose()


__all__ = ["initialize", "upgrade_database", "alembic_env_path", "alembic_ini_path"]
