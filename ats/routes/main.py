"""
Main Routes Blueprint - service index and health check
"""

import logging

from flask import Blueprint, current_app, jsonify

from ats.startup import get_health_status

logger = logging.getLogger(__name__)

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def index():
    return jsonify({"ok": True})


@main_bp.route("/api/health")
def health():
    """
    Health check for load balancers and uptime monitors.

    Returns 200 when healthy, 503 otherwise.
    """
    status = get_health_status(current_app.extensions["ats_db"])
    code = 200 if status["status"] == "healthy" else 503
    return jsonify(status), code
