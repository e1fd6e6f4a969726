"""
Accounts Blueprint - registration, login and password management

Route: /api/auth/*

Only /me and /delete need a token; the rest are how a client gets one.
"""

import logging

from flask import Blueprint, current_app, jsonify

from ats.auth import require_auth
from ats.routes.common import current_user_id, get_settings, json_body

logger = logging.getLogger(__name__)

accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/auth")

RESET_MESSAGE = "If that email exists, a reset code was sent."


def _accounts():
    return current_app.extensions["ats_accounts"]


def _token_for(user):
    return current_app.extensions["ats_tokens"].issue(user["id"], {"email": user["email"]})


@accounts_bp.route("/register", methods=["POST"])
def register():
    """
    Create an account and sign in.

    Request Body (JSON):
        email, password, confirmPassword, firstName, lastName

    Returns:
        201 {message, token}
    """
    user = _accounts().register(json_body())
    return jsonify({"message": "Registered", "token": _token_for(user)}), 201


@accounts_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    user = _accounts().authenticate(data.get("email"), data.get("password"))
    return jsonify({"message": "Logged in", "token": _token_for(user)})


@accounts_bp.route("/logout", methods=["POST"])
def logout():
    # Tokens are stateless; the client discards its copy
    return jsonify({"message": "Logged out"})


@accounts_bp.route("/forgot", methods=["POST"])
def forgot_password():
    """
    Issue a password reset code.

    The response is identical whether or not the email is registered. The
    code itself is only echoed back when auth.expose_reset_codes is enabled.
    """
    code = _accounts().request_reset(json_body().get("email"))
    response = {"message": RESET_MESSAGE}
    if code and get_settings().expose_reset_codes:
        response["demoCode"] = code
    return jsonify(response)


@accounts_bp.route("/reset", methods=["POST"])
def reset_password():
    user = _accounts().reset_password(json_body())
    return jsonify({"message": "Password updated", "token": _token_for(user)})


@accounts_bp.route("/me", methods=["GET"])
@require_auth
def me():
    return jsonify({"user": _accounts().get_user(current_user_id())})


@accounts_bp.route("/me", methods=["PUT"])
@require_auth
def update_me():
    user = _accounts().update_names(current_user_id(), json_body())
    return jsonify({"message": "Updated", "user": user})


@accounts_bp.route("/delete", methods=["POST"])
@require_auth
def delete_account():
    _accounts().delete(current_user_id(), json_body().get("password"))
    return jsonify({"message": "Account deleted"})
