"""
Section Presets Blueprint - saved snippets for a single resume section
"""

from flask import Blueprint, jsonify

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_store, json_body

section_presets_bp = Blueprint("section_presets", __name__, url_prefix="/api/section-presets")
section_presets_bp.before_request(authenticate_request)


@section_presets_bp.route("", methods=["POST"])
def save_section_preset():
    preset = get_store("section_presets").create(current_user_id(), json_body())
    return jsonify({"message": "Section preset saved", "preset": preset}), 201


@section_presets_bp.route("/<section_name>", methods=["GET"])
def list_section_presets(section_name):
    """All presets for one section, newest first."""
    presets = get_store("section_presets").list(current_user_id(), section_name=section_name)
    return jsonify({"presets": presets})


@section_presets_bp.route("/<int:preset_id>", methods=["DELETE"])
def delete_section_preset(preset_id):
    get_store("section_presets").delete(preset_id, current_user_id())
    return jsonify({"message": "Preset deleted"})
