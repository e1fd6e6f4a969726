"""
Skill Progress Blueprint - learning status per skill
"""

from flask import Blueprint, jsonify

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_store, json_body

skill_progress_bp = Blueprint("skill_progress", __name__, url_prefix="/api/skill-progress")
skill_progress_bp.before_request(authenticate_request)


@skill_progress_bp.route("", methods=["GET"])
def list_progress():
    return jsonify({"progress": get_store("skill_progress").list(current_user_id())})


@skill_progress_bp.route("/<skill>", methods=["PUT"])
def set_progress(skill):
    """
    Create or update progress for a skill.

    Request Body (JSON):
        status: "not started", "in progress" or "completed"
    """
    entry = get_store("skill_progress").set_status(current_user_id(), skill, json_body().get("status"))
    return jsonify({"message": "Progress updated", "entry": entry})
