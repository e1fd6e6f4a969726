"""
ATS Tracker - Application Factory

JSON API for tracking job applications and the profile material behind
them: resumes, employment, education, skills, certifications and projects.
"""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from ats.accounts import AccountStore
from ats.auth import TokenCodec
from ats.config import Config, get_config
from ats.database import Database
from ats.errors import register_error_handlers
from ats.logging_config import init_request_ids
from ats.resources import build_stores

logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None, config_path=None):
    """
    Application factory for creating Flask app instances.

    Args:
        config: Ready-made configuration (tests pass one in)
        config_path: Optional path to a YAML settings file, used when
            ``config`` is not given

    Returns:
        Configured Flask application instance

    Raises:
        ValueError: If JWT_SECRET is missing or a setting is invalid
    """
    # Load environment variables
    from dotenv import load_dotenv

    load_dotenv()

    if config is None:
        try:
            config = get_config(config_path)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Configuration Error: {e}")
            raise

    app = Flask(__name__)
    app.json.sort_keys = False

    # Leave headroom over the upload limit so oversized files get a clear 400
    app.config["MAX_CONTENT_LENGTH"] = config.max_upload_bytes * 2

    CORS(app, origins=config.cors_origins)

    db = Database(config.database_url, config.database_pool_size)
    db.init_schema()

    app.extensions["ats_config"] = config
    app.extensions["ats_db"] = db
    app.extensions["ats_tokens"] = TokenCodec(config.jwt_secret, config.token_ttl_hours)
    app.extensions["ats_stores"] = build_stores(db)
    app.extensions["ats_accounts"] = AccountStore(db, config.reset_code_ttl_minutes)

    init_request_ids(app)
    register_error_handlers(app)
    register_blueprints(app)

    logger.info(f"ATS app created ({config.environment}, {db!r})")
    return app


def register_blueprints(app):
    """Register all Flask blueprints."""
    from ats.routes import register_all_blueprints

    register_all_blueprints(app)
