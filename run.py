#!/usr/bin/env python3
"""
ATS Tracker - Main Entry Point

Uses the application factory pattern via ats.create_app().

Usage:
    python run.py

Environment Variables:
    JWT_SECRET: token signing secret (required)
    DATABASE_URL: sqlite:///path/to/ats.db or postgresql://... (default: ./ats.db)
    ATS_CONFIG: path to a YAML settings file (optional)
    FLASK_ENV: development (default), production, testing
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (optional)
    PORT: port to listen on (default 4000)
"""

import os
import sys
from pathlib import Path

APP_DIR = Path(__file__).parent

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv(APP_DIR / ".env")

# Initialize logging first
from ats.logging_config import setup_logging, get_logger

flask_env = os.environ.get("FLASK_ENV", "development")
log_level = os.environ.get("LOG_LEVEL")
json_logs = flask_env == "production"

setup_logging(level=log_level, json_logs=json_logs)
logger = get_logger(__name__)


def main():
    """Main entry point for the ATS backend."""

    logger.info("=" * 60)
    logger.info("ATS Tracker - Starting Up")
    logger.info("=" * 60)

    from ats.config import get_config

    try:
        config = get_config()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration Error: {e}")
        sys.exit(1)

    from ats.startup import run_startup_validation

    logger.info("Running startup validation...")
    validation_passed, results = run_startup_validation(
        config, strict=False, log_results=True  # Allow warnings in development
    )

    if not validation_passed:
        logger.error("Startup validation failed. Please fix the errors above.")
        sys.exit(1)

    from ats import create_app

    app = create_app(config)
    port = int(os.environ.get("PORT", 4000))

    logger.info("")
    logger.info("=" * 60)
    logger.info(f"  Environment: {config.environment}")
    logger.info(f"  Database: {app.extensions['ats_db']!r}")
    logger.info(f"  Uploads: {config.upload_dir}")
    logger.info(f"  API: http://localhost:{port}/api")
    logger.info(f"  Health Check: http://localhost:{port}/api/health")
    logger.info("=" * 60)
    logger.info("")

    debug_mode = flask_env != "production"
    try:
        app.run(debug=debug_mode, host="0.0.0.0", port=port, use_reloader=False)
    finally:
        app.extensions["ats_db"].close()


if __name__ == "__main__":
    main()
