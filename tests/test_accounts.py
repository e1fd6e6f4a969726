"""
Tests for registration, login, password reset and account deletion.
"""

import pytest

from ats import create_app
from ats.accounts import valid_email
from tests.conftest import TEST_PASSWORD, make_config


def _register(client, email="new@example.com", **overrides):
    payload = {
        "email": email,
        "password": TEST_PASSWORD,
        "confirmPassword": TEST_PASSWORD,
        "firstName": "Ada",
        "lastName": "Lovelace",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


# ===== Registration =====


def test_register_returns_working_token(client):
    response = _register(client)

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Registered"

    me = client.get("/api/auth/me", headers=_bearer(body["token"]))
    assert me.status_code == 200
    assert me.get_json()["user"]["email"] == "new@example.com"
    assert me.get_json()["user"]["firstName"] == "Ada"


def test_register_normalizes_email(client):
    _register(client, email="  Ada@Example.COM ")
    response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 200


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"email": "not-an-email"}, "Invalid email format"),
        ({"password": "short", "confirmPassword": "short"}, "Password must be 8+ chars incl. uppercase, lowercase, number"),
        ({"password": "alllowercase1", "confirmPassword": "alllowercase1"}, "Password must be 8+ chars incl. uppercase, lowercase, number"),
        ({"confirmPassword": "Different123"}, "Passwords do not match"),
        ({"firstName": "  "}, "First and last name are required"),
    ],
)
def test_register_validation(client, overrides, message):
    response = _register(client, **overrides)
    assert response.status_code == 400
    assert response.get_json()["error"] == message


def test_register_duplicate_email(client):
    _register(client)
    response = _register(client, email="NEW@example.com")
    assert response.status_code == 409
    assert response.get_json()["error"] == "Email already in use"


@pytest.mark.parametrize("email", ["a@b.co", "first.last@sub.example.org"])
def test_valid_email(email):
    assert valid_email(email)


@pytest.mark.parametrize("email", ["", "plain", "@example.com", "a@localhost", "a@.com", "a@example."])
def test_invalid_email(email):
    assert not valid_email(email)


# ===== Login =====


def test_login(client, user):
    response = client.post("/api/auth/login", json={"email": user["email"], "password": TEST_PASSWORD})
    assert response.status_code == 200
    assert response.get_json()["token"]


@pytest.mark.parametrize(
    "email,password",
    [("user-missing@example.com", TEST_PASSWORD), (None, None)],
)
def test_login_unknown_user(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 401
    assert response.get_json()["code"] == "INVALID_CREDENTIALS"


def test_login_wrong_password(client, user):
    response = client.post("/api/auth/login", json={"email": user["email"], "password": "Wrong1234"})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid email or password", "code": "INVALID_CREDENTIALS"}


def test_logout(client):
    assert client.post("/api/auth/logout").get_json() == {"message": "Logged out"}


# ===== Profile names =====


def test_update_names(client, auth_headers):
    response = client.put("/api/auth/me", json={"firstName": "Grace", "lastName": "Hopper"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["user"]["lastName"] == "Hopper"


def test_update_names_requires_both(client, auth_headers):
    response = client.put("/api/auth/me", json={"firstName": "Grace"}, headers=auth_headers)
    assert response.status_code == 400


# ===== Password reset =====


def test_password_reset_flow(client, user):
    forgot = client.post("/api/auth/forgot", json={"email": user["email"]})
    assert forgot.status_code == 200
    code = forgot.get_json()["demoCode"]
    assert len(code) == 6 and code.isdigit()

    reset = client.post(
        "/api/auth/reset",
        json={"email": user["email"], "code": code, "newPassword": "NewSecret9", "confirmPassword": "NewSecret9"},
    )
    assert reset.status_code == 200
    assert reset.get_json()["token"]

    old = client.post("/api/auth/login", json={"email": user["email"], "password": TEST_PASSWORD})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": user["email"], "password": "NewSecret9"})
    assert new.status_code == 200

    # Codes are single use
    replay = client.post(
        "/api/auth/reset",
        json={"email": user["email"], "code": code, "newPassword": "Another99X", "confirmPassword": "Another99X"},
    )
    assert replay.status_code == 400
    assert replay.get_json()["error"] == "Invalid or expired code"


def test_forgot_unknown_email_looks_the_same(client):
    response = client.post("/api/auth/forgot", json={"email": "ghost@example.com"})
    assert response.status_code == 200
    assert response.get_json() == {"message": "If that email exists, a reset code was sent."}


def test_forgot_hides_code_unless_configured(tmp_path):
    app = create_app(make_config(tmp_path, settings={"auth": {"expose_reset_codes": False}}))
    try:
        client = app.test_client()
        _register(client)
        response = client.post("/api/auth/forgot", json={"email": "new@example.com"})
        assert response.get_json() == {"message": "If that email exists, a reset code was sent."}
    finally:
        app.extensions["ats_db"].close()


@pytest.mark.parametrize(
    "changes,message",
    [
        ({"code": "000000"}, "Invalid or expired code"),
        ({"confirmPassword": "Mismatch99"}, "Passwords do not match"),
        ({"newPassword": "weak", "confirmPassword": "weak"}, "Weak password"),
    ],
)
def test_reset_validation(client, user, changes, message):
    code = client.post("/api/auth/forgot", json={"email": user["email"]}).get_json()["demoCode"]
    payload = {"email": user["email"], "code": code, "newPassword": "NewSecret9", "confirmPassword": "NewSecret9"}
    payload.update(changes)

    response = client.post("/api/auth/reset", json=payload)
    assert response.status_code == 400
    assert response.get_json()["error"] == message


def test_expired_reset_code(app, client, user):
    code = client.post("/api/auth/forgot", json={"email": user["email"]}).get_json()["demoCode"]
    with app.extensions["ats_db"].connection() as conn:
        conn.execute("UPDATE password_resets SET expires_at = ?", ("2000-01-01T00:00:00+00:00",))

    response = client.post(
        "/api/auth/reset",
        json={"email": user["email"], "code": code, "newPassword": "NewSecret9", "confirmPassword": "NewSecret9"},
    )
    assert response.status_code == 400


# ===== Deletion =====


def test_delete_account_removes_owned_rows(app, client, user):
    client.post("/api/skills", json={"name": "Python"}, headers=user["headers"])

    wrong = client.post("/api/auth/delete", json={"password": "Nope12345"}, headers=user["headers"])
    assert wrong.status_code == 401
    assert wrong.get_json()["error"] == "Invalid password"

    response = client.post("/api/auth/delete", json={"password": TEST_PASSWORD}, headers=user["headers"])
    assert response.status_code == 200

    with app.extensions["ats_db"].connection() as conn:
        assert conn.fetch_one("SELECT COUNT(*) AS n FROM skills")["n"] == 0
        assert conn.fetch_one("SELECT COUNT(*) AS n FROM users WHERE id = ?", (user["id"],))["n"] == 0
