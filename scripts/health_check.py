#!/usr/bin/env python3
"""
Readiness check for a StayDesk deployment.
Verifies that every component the import workflow depends on is reachable.
"""

import logging
import os
import sys
from pathlib import Path

import requests

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def check_database() -> bool:
    """Check that the database accepts connections."""
    try:
        from sqlalchemy import text

        from app.database.engine import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()

        logger.info("Database is reachable")
        return True
    except Exception as e:
        logger.error(f"Database is unreachable: {e}")
        return False


def check_broker() -> bool:
    """Check that the Celery broker accepts connections."""
    try:
        from worker.celery_app import celery_app

        with celery_app.connection_for_write() as conn:
            conn.ensure_connection(max_retries=1)

        logger.info("Message broker is reachable")
        return True
    except Exception as e:
        logger.error(f"Message broker is unreachable: {e}")
        return False


def check_web_app() -> bool:
    """Check the API health endpoint."""
    try:
        base_url = os.getenv("APP_BASE_URL", "http://localhost:8000")
        response = requests.get(f"{base_url}/healthz", timeout=10)
        if response.status_code == 200:
            logger.info("Web application is reachable")
            return True
        logger.error(f"Web application is unavailable: HTTP {response.status_code}")
        return False
    except requests.RequestException as e:
        logger.error(f"Web application is unavailable: {e}")
        return False


def check_import_workers() -> bool:
    """Check that at least one worker answers on the ingest queue."""
    try:
        from worker.celery_app import celery_app

        replies = celery_app.control.ping(timeout=5)
        if replies:
            logger.info(f"Celery workers active: {len(replies)}")
            return True
        logger.warning("No Celery workers answered")
        return False
    except Exception as e:
        logger.error(f"Failed to check Celery workers: {e}")
        return False


def check_scraper() -> bool:
    """Airbnb import needs the scraper API key; warn only."""
    if os.getenv("AIRBNB_SCRAPER_API_KEY"):
        logger.info("Airbnb scraper API key configured")
        return True
    logger.warning("AIRBNB_SCRAPER_API_KEY not set, Airbnb import disabled")
    return False


def main():
    logger.info("Starting StayDesk readiness check")

    critical = {"Database", "Message broker", "Web application"}
    checks = [
        ("Database", check_database),
        ("Message broker", check_broker),
        ("Web application", check_web_app),
        ("Celery workers", check_import_workers),
        ("Airbnb scraper", check_scraper),
    ]

    results = []
    for name, check_func in checks:
        logger.info(f"Checking {name}...")
        result = check_func()
        results.append((name, result))

        if not result and name in critical:
            logger.error(f"Critical component {name} is unavailable")
            sys.exit(1)

    logger.info("Check results:")
    for name, result in results:
        logger.info(f"  {name}: {'OK' if result else 'FAIL'}")

    failed_checks = [name for name, result in results if not result]
    if failed_checks:
        logger.warning(f"Unavailable components: {', '.join(failed_checks)}")
    else:
        logger.info("All components are ready")


if __name__ == "__main__":
    main()
