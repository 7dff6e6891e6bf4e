#!/usr/bin/env python3
"""
Database initialization script for StayDesk.
Creates the schema on first start and applies pending Alembic migrations.
"""

import logging
import os
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect

from app.database.engine import engine
from app.database.init_db import init_database

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

REQUIRED_TABLES = {"properties", "import_jobs", "calendar_sync_configs"}


def alembic_config() -> Config:
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(project_root / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", str(engine.url.render_as_string(hide_password=False)))
    return alembic_cfg


def check_database_exists() -> bool:
    """Check whether the import tables are already there."""
    try:
        tables = set(inspect(engine).get_table_names())
        return REQUIRED_TABLES.issubset(tables)
    except Exception as e:
        logger.info(f"Database not found or unreachable: {e}")
        return False


def create_tables() -> bool:
    """Create all tables and stamp them with the latest revision."""
    try:
        logger.info("Creating database tables...")
        init_database()
        command.stamp(alembic_config(), "head")
        logger.info("Tables created")
        return True
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        return False


def run_migrations() -> bool:
    """Apply pending Alembic migrations."""
    try:
        alembic_cfg = alembic_config()
        script = ScriptDirectory.from_config(alembic_cfg)

        with engine.connect() as conn:
            current_rev = MigrationContext.configure(conn).get_current_revision()
        head_rev = script.get_current_head()

        if current_rev != head_rev:
            logger.info(f"Applying migrations: {current_rev} -> {head_rev}")
            command.upgrade(alembic_cfg, "head")
            logger.info("Migrations applied")
        else:
            logger.info("Database is up to date")

        return True
    except Exception as e:
        logger.error(f"Failed to apply migrations: {e}")
        return False


def main():
    logger.info("Starting StayDesk database initialization")

    db_url = os.getenv("DB_URL")
    if not db_url:
        logger.error("DB_URL is not set")
        sys.exit(1)

    logger.info(f"Connecting to database: {db_url.split('@')[1] if '@' in db_url else db_url}")

    if check_database_exists():
        logger.info("Database already initialized")
        if not run_migrations():
            sys.exit(1)
    else:
        logger.info("Initializing a new database")
        if not create_tables():
            sys.exit(1)

    logger.info("Database initialization finished")


if __name__ == "__main__":
    main()
