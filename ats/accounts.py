"""
User accounts: registration, login, password reset and deletion.

Passwords are hashed with werkzeug. Reset codes are kept in the
``password_resets`` table so they survive restarts and work across workers.
"""

import logging
import re
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ats.dates import parse_timestamp, utcnow, utcnow_iso
from ats.errors import DuplicateError, InvalidCredentialsError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# 8+ characters with at least one lower-case letter, one upper-case letter and one digit
PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")
PASSWORD_RULE_MESSAGE = "Password must be 8+ chars incl. uppercase, lowercase, number"


def valid_email(email: str) -> bool:
    """Something@domain.tld, nothing stricter."""
    if "@" not in email:
        return False
    local, _, domain = email.partition("@")
    return bool(local) and "." in domain and not domain.startswith(".") and not domain.endswith(".")


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


class AccountStore:
    """Account operations over the ``users`` and ``password_resets`` tables."""

    def __init__(self, db, reset_code_ttl_minutes: int = 60):
        self.db = db
        self.reset_code_ttl = timedelta(minutes=reset_code_ttl_minutes)

    def _find_by_email(self, conn, email: str) -> Optional[Dict[str, Any]]:
        return conn.fetch_one("SELECT * FROM users WHERE email = ?", (email,))

    def register(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a local account.

        Raises:
            ValidationError: Bad email, weak password, mismatch or missing names
            DuplicateError: Email already registered
        """
        email = _text(data, "email").strip().lower()
        password = _text(data, "password")
        first_name = _text(data, "firstName").strip()
        last_name = _text(data, "lastName").strip()

        if not valid_email(email):
            raise ValidationError("Invalid email format")
        if not PASSWORD_RULE.match(password):
            raise ValidationError(PASSWORD_RULE_MESSAGE)
        if password != _text(data, "confirmPassword"):
            raise ValidationError("Passwords do not match")
        if not first_name or not last_name:
            raise ValidationError("First and last name are required")

        with self.db.connection() as conn:
            if self._find_by_email(conn, email):
                raise DuplicateError("Email already in use")
            user_id = conn.insert(
                "INSERT INTO users (email, password_hash, first_name, last_name, provider, created_at) "
                "VALUES (?, ?, ?, ?, 'local', ?)",
                (email, generate_password_hash(password), first_name, last_name, utcnow_iso()),
            )

        logger.info(f"Registered user {user_id}")
        return {"id": user_id, "email": email}

    def authenticate(self, email: Any, password: Any) -> Dict[str, Any]:
        """Raises InvalidCredentialsError for an unknown email or wrong password."""
        email = ("" if email is None else str(email)).strip().lower()
        with self.db.connection() as conn:
            user = self._find_by_email(conn, email)
        if not user or not user.get("password_hash"):
            raise InvalidCredentialsError()
        if not check_password_hash(user["password_hash"], "" if password is None else str(password)):
            raise InvalidCredentialsError()
        return {"id": user["id"], "email": user["email"]}

    def request_reset(self, email: Any) -> Optional[str]:
        """
        Store a fresh 6-digit reset code for a known email.

        Returns:
            The code, or None when the email is not registered
        """
        email = ("" if email is None else str(email)).strip().lower()
        code = f"{secrets.randbelow(900000) + 100000}"
        expires_at = (utcnow() + self.reset_code_ttl).isoformat()

        with self.db.connection() as conn:
            if not self._find_by_email(conn, email):
                return None
            conn.execute("DELETE FROM password_resets WHERE email = ?", (email,))
            conn.execute(
                "INSERT INTO password_resets (email, code, expires_at) VALUES (?, ?, ?)",
                (email, code, expires_at),
            )

        logger.info("Issued password reset code")
        return code

    def reset_password(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Consume a reset code and set a new password.

        Raises:
            ValidationError: Unknown, wrong or expired code; mismatch; weak password
            NotFoundError: The account vanished after the code was issued
        """
        email = _text(data, "email").strip().lower()
        code = _text(data, "code").strip()
        new_password = _text(data, "newPassword")

        with self.db.connection() as conn:
            entry = conn.fetch_one("SELECT * FROM password_resets WHERE email = ?", (email,))
            if (
                not entry
                or not code
                or not secrets.compare_digest(entry["code"], code)
                or parse_timestamp(entry["expires_at"]) < utcnow()
            ):
                raise ValidationError("Invalid or expired code")

            if new_password != _text(data, "confirmPassword"):
                raise ValidationError("Passwords do not match")
            if not PASSWORD_RULE.match(new_password):
                raise ValidationError("Weak password")

            user = self._find_by_email(conn, email)
            if not user:
                raise NotFoundError("User not found")
            conn.execute(
                "UPDATE users SET password_hash = ? WHERE id = ?",
                (generate_password_hash(new_password), user["id"]),
            )
            conn.execute("DELETE FROM password_resets WHERE email = ?", (email,))

        logger.info(f"Password reset for user {user['id']}")
        return {"id": user["id"], "email": email}

    def get_user(self, user_id: int) -> Dict[str, Any]:
        with self.db.connection() as conn:
            user = conn.fetch_one(
                "SELECT id, email, first_name, last_name FROM users WHERE id = ?", (user_id,)
            )
        if not user:
            raise NotFoundError("Not found")
        return {
            "id": user["id"],
            "email": user["email"],
            "firstName": user["first_name"],
            "lastName": user["last_name"],
        }

    def update_names(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        first_name = _text(data, "firstName").strip()
        last_name = _text(data, "lastName").strip()
        if not first_name or not last_name:
            raise ValidationError("First and last name are required")
        with self.db.connection() as conn:
            updated = conn.execute(
                "UPDATE users SET first_name = ?, last_name = ? WHERE id = ?",
                (first_name, last_name, user_id),
            )
        if updated == 0:
            raise NotFoundError("Not found")
        return self.get_user(user_id)

    def delete(self, user_id: int, password: Any) -> None:
        """Delete the account and, by cascade, everything it owns."""
        with self.db.connection() as conn:
            user = conn.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
            if not user:
                raise NotFoundError("Not found")
            if not check_password_hash(user.get("password_hash") or "", "" if password is None else str(password)):
                raise InvalidCredentialsError("Invalid password")
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        logger.info(f"Deleted user {user_id}")
