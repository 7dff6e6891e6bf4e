"""
Database initialization script.
"""
import logging

from sqlmodel import SQLModel

from app.database.engine import engine

logger = logging.getLogger("app.database")


def init_database() -> None:
    """
    Create all tables known to the metadata.
    """
    logger.info("Initializing database...")

    # Register table models on the metadata
    from app.models import calendar_sync, import_models, property  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


if __name__ == "__main__":
    init_database()
