"""
Cover Letter Templates Blueprint - shared and custom template library
"""

import logging

from flask import Blueprint, jsonify

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_store, json_body

logger = logging.getLogger(__name__)

cover_letter_templates_bp = Blueprint(
    "cover_letter_templates", __name__, url_prefix="/api/cover-letter/templates"
)
cover_letter_templates_bp.before_request(authenticate_request)


@cover_letter_templates_bp.route("", methods=["GET"])
def list_templates():
    """Shared templates and the caller's own, most recently touched first."""
    templates = get_store("cover_letter_templates").list(current_user_id())
    return jsonify({"templates": templates})


@cover_letter_templates_bp.route("", methods=["POST"])
def create_template():
    """
    Add a custom template.

    Request Body (JSON):
        name, industry, content (str): Required
        category (str): Defaults to "Formal"
    """
    template = get_store("cover_letter_templates").create(current_user_id(), json_body())
    return jsonify({"template": template}), 201


@cover_letter_templates_bp.route("/<int:template_id>", methods=["GET"])
def get_template(template_id):
    template = get_store("cover_letter_templates").get(template_id, current_user_id())
    return jsonify({"template": template})


@cover_letter_templates_bp.route("/<int:template_id>/track-view", methods=["POST"])
def track_view(template_id):
    template = get_store("cover_letter_templates").track(template_id, current_user_id(), "view_count")
    return jsonify({"ok": True, "template": template})


@cover_letter_templates_bp.route("/<int:template_id>/track-use", methods=["POST"])
def track_use(template_id):
    template = get_store("cover_letter_templates").track(template_id, current_user_id(), "use_count")
    return jsonify({"ok": True, "template": template})
