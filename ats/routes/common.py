"""Helpers shared by the route blueprints."""

from flask import current_app, g, request

from ats.errors import ValidationError


def get_store(name: str):
    """Look up a store built by ``create_app``."""
    return current_app.extensions["ats_stores"][name]


def get_settings():
    """The application's ``Config``."""
    return current_app.extensions["ats_config"]


def json_body() -> dict:
    """
    Parsed JSON request body.

    An empty body is treated as ``{}``; a body that is not valid JSON is
    rejected.
    """
    if not request.get_data(cache=True):
        return {}
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def current_user_id() -> int:
    return g.user_id
