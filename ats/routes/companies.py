"""
Companies Blueprint - per-user company notes addressed by name
"""

import logging

from flask import Blueprint, jsonify, request

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_settings, get_store, json_body
from ats.uploads import pick_file, save_image

logger = logging.getLogger(__name__)

companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")
companies_bp.before_request(authenticate_request)


@companies_bp.route("", methods=["GET"])
def list_companies():
    return jsonify({"companies": get_store("companies").list(current_user_id())})


@companies_bp.route("/<name>", methods=["GET"])
def get_company(name):
    """
    Fetch a company by name (case-insensitive).

    Route: GET /api/companies/<name>

    A company seen for the first time is created with only its name and a
    placeholder description, so the response is always a full record.
    """
    return jsonify({"company": get_store("companies").get_by_name(current_user_id(), name)})


@companies_bp.route("", methods=["POST"])
def save_company():
    """
    Create a company or replace all of its fields.

    Route: POST /api/companies

    Request Body (JSON):
        name (str): Required; matched case-insensitively
        size, industry, location, website, description, mission, news,
        contact_email, contact_phone, logo_url (str)
        glassdoor_rating (float): 0 to 5

    Returns:
        201 {message: "Company created", company} or
        200 {message: "Company updated", company}
    """
    company, created = get_store("companies").save(current_user_id(), json_body())
    if created:
        return jsonify({"message": "Company created", "company": company}), 201
    return jsonify({"message": "Company updated", "company": company})


@companies_bp.route("/<name>", methods=["PUT", "PATCH"])
def update_company(name):
    company = get_store("companies").update_by_name(current_user_id(), name, json_body())
    return jsonify({"message": "Company updated", "company": company})


@companies_bp.route("/<name>/logo", methods=["POST"])
def upload_company_logo(name):
    """Store an uploaded logo (multipart field "logo") and point the company at it."""
    settings = get_settings()
    stored = save_image(
        pick_file(request.files, ("logo", "image", "file")),
        settings.upload_dir,
        settings.max_upload_bytes,
        settings.allowed_image_extensions,
    )
    company = get_store("companies").set_logo(current_user_id(), name, f"/uploads/{stored}")
    logger.debug(f"Logo {stored} set for company {company['id']}")
    return jsonify({"message": "Logo uploaded successfully", "company": company})
