"""
Cover Letter Export Blueprint - download a letter as PDF, DOCX or text
"""

import logging
from io import BytesIO

from flask import Blueprint, send_file

from ats.auth import authenticate_request
from ats.exporters import export_cover_letter
from ats.routes.common import json_body

logger = logging.getLogger(__name__)

exports_bp = Blueprint("exports", __name__, url_prefix="/api/cover-letter/export")
exports_bp.before_request(authenticate_request)


def _export(kind):
    data = json_body()
    payload, filename, mimetype = export_cover_letter(
        kind, data.get("content"), data.get("jobTitle"), data.get("company")
    )
    logger.debug(f"Exported cover letter as {filename}")
    return send_file(
        BytesIO(payload),
        as_attachment=True,
        download_name=filename,
        mimetype=mimetype,
    )


@exports_bp.route("/pdf", methods=["POST"])
def export_pdf():
    return _export("pdf")


@exports_bp.route("/docx", methods=["POST"])
def export_docx():
    return _export("docx")


@exports_bp.route("/text", methods=["POST"])
def export_text():
    return _export("text")
