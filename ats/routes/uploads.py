"""
Uploads Blueprint - image uploads and serving stored files
"""

import logging

from flask import Blueprint, jsonify, request, send_from_directory

from ats.auth import require_auth
from ats.routes.common import get_settings
from ats.uploads import pick_file, save_image

logger = logging.getLogger(__name__)

uploads_bp = Blueprint("uploads", __name__)


def _store_image():
    settings = get_settings()
    name = save_image(
        pick_file(request.files),
        settings.upload_dir,
        settings.max_upload_bytes,
        settings.allowed_image_extensions,
    )
    return jsonify({"url": f"/uploads/{name}"})


@uploads_bp.route("/api/upload", methods=["POST"])
@require_auth
def upload_image():
    """
    Store an image.

    Route: POST /api/upload (multipart field "image" or "file")

    Rejects missing files, non-image extensions and payloads over the
    configured size limit before anything is written.

    Returns:
        JSON: {url: "/uploads/<name>"}
    """
    return _store_image()


@uploads_bp.route("/api/upload-profile-pic", methods=["POST"])
@require_auth
def upload_profile_picture():
    return _store_image()


@uploads_bp.route("/uploads/<path:filename>")
def serve_upload(filename):
    """Serve a stored upload; names are unguessable so no auth is required."""
    return send_from_directory(get_settings().upload_dir, filename)
