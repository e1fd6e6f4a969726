"""
Resumes Blueprint - resumes, templates and import
"""

import logging

from flask import Blueprint, jsonify, request

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_settings, get_store, json_body
from ats.uploads import IMPORT_PREVIEW_CHARS, extract_resume_text, pick_file

logger = logging.getLogger(__name__)

resumes_bp = Blueprint("resumes", __name__, url_prefix="/api/resumes")
resumes_bp.before_request(authenticate_request)


# ============== Templates ==============


@resumes_bp.route("/templates", methods=["GET"])
def list_templates():
    """The caller's templates plus global ones, default first."""
    templates = get_store("resume_templates").list(current_user_id())
    return jsonify({"templates": templates})


@resumes_bp.route("/templates", methods=["POST"])
def create_template():
    template = get_store("resume_templates").create(current_user_id(), json_body())
    return jsonify({"message": "Template created", "template": template}), 201


@resumes_bp.route("/templates/<int:template_id>/default", methods=["PATCH", "PUT"])
def set_default_template(template_id):
    template = get_store("resume_templates").set_default(template_id, current_user_id())
    return jsonify({"message": "Default template updated", "template": template})


# ============== Drafting and import ==============


@resumes_bp.route("/from-profile", methods=["GET"])
def draft_from_profile():
    """
    Build resume sections from the caller's profile data.

    Route: GET /api/resumes/from-profile

    Nothing is saved; the client edits the draft and POSTs it back.
    """
    sections = get_store("resumes").draft_from_profile(current_user_id())
    return jsonify({"message": "Draft resume sections generated successfully.", "sections": sections})


@resumes_bp.route("/import", methods=["POST"])
def import_resume():
    """
    Extract text from an uploaded resume.

    Route: POST /api/resumes/import (multipart field "resume" or "file")

    Returns:
        JSON: {message, text} with the first 1000 characters of text
    """
    upload = pick_file(request.files, ("resume", "file"))
    text = extract_resume_text(upload, get_settings().max_upload_bytes)
    logger.info(f"Imported resume text ({len(text)} chars)")
    return jsonify(
        {
            "message": "File parsed successfully (preview snippet).",
            "text": text[:IMPORT_PREVIEW_CHARS],
        }
    )


# ============== Resumes ==============


@resumes_bp.route("", methods=["GET"])
def list_resumes():
    return jsonify({"resumes": get_store("resumes").list(current_user_id())})


@resumes_bp.route("", methods=["POST"])
def create_resume():
    resume = get_store("resumes").create(current_user_id(), json_body())
    return jsonify({"message": "Resume saved", "resume": resume}), 201


@resumes_bp.route("/<int:resume_id>", methods=["GET"])
def get_resume(resume_id):
    return jsonify({"resume": get_store("resumes").get(resume_id, current_user_id())})


@resumes_bp.route("/<int:resume_id>", methods=["PUT", "PATCH"])
def update_resume(resume_id):
    resume = get_store("resumes").update(resume_id, current_user_id(), json_body())
    return jsonify({"message": "Resume updated", "resume": resume})


@resumes_bp.route("/<int:resume_id>", methods=["DELETE"])
def delete_resume(resume_id):
    get_store("resumes").delete(resume_id, current_user_id())
    return jsonify({"message": "Resume deleted"})
