"""
Generic CRUD blueprints for the simple owned resources.

Each blueprint exposes the same five endpoints over one ``ResourceStore``:

    GET    /api/<resource>          list the caller's rows
    POST   /api/<resource>          create (201)
    GET    /api/<resource>/<id>     read one
    PUT    /api/<resource>/<id>     partial update (PATCH is accepted too)
    DELETE /api/<resource>/<id>     delete
"""

import logging

from flask import Blueprint, jsonify

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_store, json_body

logger = logging.getLogger(__name__)

# (blueprint name, url prefix, store key)
CRUD_RESOURCES = [
    ("education", "/api/education", "education"),
    ("employment", "/api/employment", "employment"),
    ("skills", "/api/skills", "skills"),
    ("certifications", "/api/certifications", "certifications"),
    ("projects", "/api/projects", "projects"),
    ("cover_letters", "/api/cover-letters", "cover_letters"),
    ("resume_presets", "/api/resume-presets", "resume_presets"),
]


def make_crud_blueprint(name: str, url_prefix: str, store_key: str) -> Blueprint:
    """Build an authenticated CRUD blueprint for one store."""
    bp = Blueprint(name, __name__, url_prefix=url_prefix)
    bp.before_request(authenticate_request)

    @bp.route("", methods=["GET"])
    def list_records():
        store = get_store(store_key)
        return jsonify({store.plural: store.list(current_user_id())})

    @bp.route("", methods=["POST"])
    def create_record():
        store = get_store(store_key)
        record = store.create(current_user_id(), json_body())
        return jsonify({"message": f"{store.label} added successfully", store.singular: record}), 201

    @bp.route("/<int:record_id>", methods=["GET"])
    def get_record(record_id):
        store = get_store(store_key)
        return jsonify({store.singular: store.get(record_id, current_user_id())})

    @bp.route("/<int:record_id>", methods=["PUT", "PATCH"])
    def update_record(record_id):
        store = get_store(store_key)
        record = store.update(record_id, current_user_id(), json_body())
        return jsonify({"message": f"{store.label} updated successfully", store.singular: record})

    @bp.route("/<int:record_id>", methods=["DELETE"])
    def delete_record(record_id):
        store = get_store(store_key)
        store.delete(record_id, current_user_id())
        return jsonify({"message": f"{store.label} deleted successfully"})

    return bp


def crud_blueprints():
    return [make_crud_blueprint(*entry) for entry in CRUD_RESOURCES]
