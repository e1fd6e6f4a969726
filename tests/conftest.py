"""
Pytest configuration and shared fixtures for the ATS backend tests.
"""

import itertools

import pytest
import yaml

from ats import create_app
from ats.config import Config
from ats.database import Database

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
TEST_PASSWORD = "Secret123"

_emails = itertools.count(1)


def make_config(tmp_path, settings=None, **env):
    """
    Build a Config backed by a temporary YAML file and SQLite database.

    Args:
        tmp_path: pytest tmp_path
        settings: Extra YAML settings merged over the test defaults
        **env: Environment overrides (e.g. JWT_SECRET="")
    """
    data = {
        "uploads": {"directory": str(tmp_path / "uploads")},
        "auth": {"expose_reset_codes": True},
    }
    for key, value in (settings or {}).items():
        data.setdefault(key, {}).update(value)

    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump(data))

    environ = {
        "JWT_SECRET": TEST_SECRET,
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "FLASK_ENV": "testing",
    }
    environ.update(env)
    return Config(config_path=config_path, environ=environ)


@pytest.fixture
def config(tmp_path):
    """Configuration pointing at a throwaway database and upload directory."""
    return make_config(tmp_path)


@pytest.fixture
def app(config):
    """
    Flask app on a fresh SQLite database.

    Yields:
        Flask: Application with schema created
    """
    app = create_app(config)
    app.config["TESTING"] = True
    yield app
    app.extensions["ats_db"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(tmp_path):
    """
    Standalone database with schema, for store-level tests.

    Yields:
        Database: Handle on a temporary SQLite file
    """
    database = Database(f"sqlite:///{tmp_path / 'store.db'}")
    database.init_schema()
    yield database
    database.close()


def insert_user(database, email=None):
    """Insert a bare user row and return its id."""
    email = email or f"user{next(_emails)}@example.com"
    with database.connection() as conn:
        return conn.insert(
            "INSERT INTO users (email, password_hash, first_name, last_name) VALUES (?, ?, ?, ?)",
            (email, "x", "Test", "User"),
        )


@pytest.fixture
def make_user(app):
    """
    Factory registering a user and returning their credentials.

    Returns:
        callable: make_user(email=None) -> dict(id, email, token, headers)
    """

    def _make_user(email=None):
        email = email or f"user{next(_emails)}@example.com"
        user = app.extensions["ats_accounts"].register(
            {
                "email": email,
                "password": TEST_PASSWORD,
                "confirmPassword": TEST_PASSWORD,
                "firstName": "Test",
                "lastName": "User",
            }
        )
        token = app.extensions["ats_tokens"].issue(user["id"], {"email": user["email"]})
        return {
            "id": user["id"],
            "email": user["email"],
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def auth_headers(user):
    return user["headers"]
