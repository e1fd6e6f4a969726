"""
Profile Blueprint - the user's public profile details
"""

from flask import Blueprint, jsonify

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_store, json_body

profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")
profile_bp.before_request(authenticate_request)


@profile_bp.route("", methods=["GET"])
def get_profile():
    """Empty object when the user has not saved a profile yet."""
    return jsonify({"profile": get_store("profiles").get(current_user_id())})


@profile_bp.route("", methods=["POST", "PUT"])
def save_profile():
    profile = get_store("profiles").save(current_user_id(), json_body())
    return jsonify({"message": "Profile saved successfully", "profile": profile})


@profile_bp.route("/picture", methods=["POST"])
def save_profile_picture():
    """
    Point the profile picture at an uploaded file.

    Request Body (JSON):
        url: Path returned by /api/upload-profile-pic, e.g. "/uploads/<name>"
    """
    url = get_store("profiles").set_picture(current_user_id(), json_body().get("url"))
    return jsonify({"message": "Profile picture saved successfully", "picture_url": url})
