"""
Database - connection management and schema for the ATS backend.

One ``Database`` is built at startup from ``DATABASE_URL`` and shared by every
request. SQLite URLs (``sqlite:///path/to/ats.db``) open a connection per
borrow; PostgreSQL URLs are served from a thread-safe connection pool.

Statements are written once with ``?`` placeholders and translated for the
PostgreSQL driver. Driver exceptions never leave this module: integrity
violations become ``IntegrityConflict`` and everything else ``StorageError``.
"""

import sqlite3
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import psycopg2
import psycopg2.extras
import psycopg2.pool

from ats.errors import IntegrityConflict, StorageError

logger = logging.getLogger(__name__)

# Tables, in dependency order. {pk} is replaced per dialect.
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id {pk},
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT,
        first_name TEXT,
        last_name TEXT,
        provider TEXT DEFAULT 'local',
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS password_resets (
        email TEXT PRIMARY KEY,
        code TEXT NOT NULL,
        expires_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id {pk},
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        full_name TEXT,
        email TEXT,
        phone TEXT,
        location TEXT,
        title TEXT,
        bio TEXT,
        industry TEXT,
        experience TEXT,
        picture_url TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS education (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        institution TEXT NOT NULL,
        degree_type TEXT NOT NULL,
        field_of_study TEXT NOT NULL,
        graduation_date TEXT,
        currently_enrolled BOOLEAN DEFAULT FALSE,
        education_level TEXT,
        gpa REAL,
        gpa_private BOOLEAN DEFAULT FALSE,
        honors TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS employment (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        company TEXT NOT NULL,
        location TEXT,
        start_date TEXT NOT NULL,
        end_date TEXT,
        is_current BOOLEAN DEFAULT FALSE,
        description TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS skills (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        category TEXT,
        proficiency TEXT,
        created_at TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_skills_user_name ON skills (user_id, LOWER(name))",
    """
    CREATE TABLE IF NOT EXISTS certifications (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        organization TEXT NOT NULL,
        category TEXT,
        cert_number TEXT,
        date_earned TEXT,
        expiration_date TEXT,
        does_not_expire BOOLEAN DEFAULT FALSE,
        document_url TEXT,
        renewal_reminder TEXT,
        verified BOOLEAN DEFAULT FALSE,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        description TEXT NOT NULL,
        role TEXT NOT NULL,
        start_date TEXT NOT NULL,
        end_date TEXT,
        technologies TEXT,
        repository_link TEXT,
        team_size INTEGER,
        collaboration_details TEXT,
        outcomes TEXT,
        industry TEXT,
        project_type TEXT,
        media_url TEXT,
        status TEXT DEFAULT 'Planned',
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS section_presets (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        section_name TEXT NOT NULL,
        preset_name TEXT NOT NULL,
        section_data TEXT NOT NULL,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resume_presets (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        section_order TEXT NOT NULL,
        visible_sections TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resume_templates (
        id {pk},
        user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        layout_type TEXT,
        font TEXT,
        color_scheme TEXT,
        is_default BOOLEAN DEFAULT FALSE,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resumes (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        template_id INTEGER,
        sections TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cover_letters (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        format TEXT DEFAULT 'pdf',
        content TEXT,
        file_url TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobs (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        company TEXT NOT NULL,
        location TEXT,
        salary_min INTEGER,
        salary_max INTEGER,
        url TEXT,
        deadline TEXT NOT NULL,
        description TEXT,
        industry TEXT,
        type TEXT,
        applied_on TEXT,
        status TEXT DEFAULT 'Interested',
        notes TEXT,
        contact_name TEXT,
        contact_email TEXT,
        contact_phone TEXT,
        salary_notes TEXT,
        interview_feedback TEXT,
        resume_id INTEGER,
        cover_letter_id INTEGER,
        archived BOOLEAN DEFAULT FALSE,
        status_updated_at TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS application_history (
        id {pk},
        job_id INTEGER NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
        event TEXT NOT NULL,
        timestamp TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS application_materials_history (
        id {pk},
        job_id INTEGER NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
        resume_id INTEGER,
        cover_letter_id INTEGER,
        changed_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS skill_progress (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        skill TEXT NOT NULL,
        status TEXT NOT NULL,
        updated_at TEXT,
        UNIQUE (user_id, skill)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS companies (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        size TEXT,
        industry TEXT,
        location TEXT,
        website TEXT,
        description TEXT,
        mission TEXT,
        news TEXT,
        glassdoor_rating REAL,
        contact_email TEXT,
        contact_phone TEXT,
        logo_url TEXT,
        created_at TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_companies_user_name ON companies (user_id, LOWER(name))",
    """
    CREATE TABLE IF NOT EXISTS cover_letter_templates (
        id {pk},
        user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        industry TEXT NOT NULL,
        category TEXT,
        content TEXT NOT NULL,
        view_count INTEGER NOT NULL DEFAULT 0,
        use_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT,
        updated_at TEXT
    )
    """,
]

PRIMARY_KEYS = {
    "sqlite": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "postgresql": "SERIAL PRIMARY KEY",
}

CRITICAL_TABLES = ["users", "education", "employment", "skills", "certifications", "jobs"]


class Connection:
    """
    Thin wrapper over a DB-API connection that speaks one placeholder style
    and returns rows as plain dicts.
    """

    def __init__(self, raw, dialect: str):
        self.raw = raw
        self.dialect = dialect

    def _cursor(self):
        if self.dialect == "postgresql":
            return self.raw.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        return self.raw.cursor()

    def _sql(self, sql: str) -> str:
        if self.dialect == "postgresql":
            return sql.replace("?", "%s")
        return sql

    def _run(self, sql: str, params: Sequence[Any] = ()):
        cursor = self._cursor()
        try:
            cursor.execute(self._sql(sql), tuple(params))
        except (sqlite3.IntegrityError, psycopg2.IntegrityError) as e:
            raise IntegrityConflict(str(e)) from e
        except (sqlite3.Error, psycopg2.Error) as e:
            raise StorageError(str(e)) from e
        return cursor

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of affected rows."""
        cursor = self._run(sql, params)
        return cursor.rowcount

    def insert(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run an INSERT and return the generated primary key."""
        if self.dialect == "postgresql":
            cursor = self._run(sql.rstrip().rstrip(";") + " RETURNING id", params)
            return cursor.fetchone()["id"]
        cursor = self._run(sql, params)
        return cursor.lastrowid

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        cursor = self._run(sql, params)
        try:
            return [dict(row) for row in cursor.fetchall()]
        except (sqlite3.Error, psycopg2.Error) as e:
            raise StorageError(str(e)) from e

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        cursor = self._run(sql, params)
        try:
            row = cursor.fetchone()
        except (sqlite3.Error, psycopg2.Error) as e:
            raise StorageError(str(e)) from e
        return dict(row) if row is not None else None


class Database:
    """
    Process-wide database handle.

    Examples:
        >>> db = Database("sqlite:///ats.db")
        >>> db.init_schema()
        >>> with db.connection() as conn:
        ...     rows = conn.fetch_all("SELECT * FROM skills WHERE user_id = ?", (1,))
        >>> db.close()
    """

    def __init__(self, url: str, pool_size: int = 10):
        parsed = urlparse(url)
        self.url = url

        if parsed.scheme == "sqlite":
            self.dialect = "sqlite"
            # sqlite:///relative.db -> "relative.db", sqlite:////abs/path.db -> "/abs/path.db"
            self.path = Path(url[len("sqlite:///"):] or "ats.db")
            self._pool = None
        elif parsed.scheme in ("postgres", "postgresql"):
            self.dialect = "postgresql"
            self.path = None
            try:
                self._pool = psycopg2.pool.ThreadedConnectionPool(1, pool_size, dsn=url)
            except psycopg2.Error as e:
                raise StorageError(f"Could not connect to PostgreSQL: {e}") from e
        else:
            raise ValueError(f"Unsupported database URL: {url}")

        self._closed = False

    def __repr__(self):
        target = self.path if self.dialect == "sqlite" else urlparse(self.url).hostname
        return f"Database(dialect={self.dialect!r}, target={str(target)!r})"

    def _acquire(self):
        if self._closed:
            raise StorageError("Database handle is closed")
        if self.dialect == "sqlite":
            try:
                conn = sqlite3.connect(self.path, timeout=30.0)
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            return conn
        try:
            return self._pool.getconn()
        except psycopg2.Error as e:
            raise StorageError(str(e)) from e

    def _release(self, conn):
        if self.dialect == "sqlite":
            conn.close()
        else:
            self._pool.putconn(conn)

    @contextmanager
    def connection(self):
        """
        Borrow a connection for the duration of a ``with`` block.

        Commits when the block exits normally, rolls back when it raises.
        """
        raw = self._acquire()
        try:
            yield Connection(raw, self.dialect)
            raw.commit()
        except Exception:
            raw.rollback()
            raise
        finally:
            self._release(raw)

    def init_schema(self):
        """Create all tables and indexes if they don't exist."""
        pk = PRIMARY_KEYS[self.dialect]

        if self.dialect == "sqlite":
            self.path.parent.mkdir(parents=True, exist_ok=True)
            raw = sqlite3.connect(self.path, timeout=30.0)
            try:
                # Enable WAL mode for better concurrency
                raw.execute("PRAGMA journal_mode=WAL")
                raw.commit()
            finally:
                raw.close()

        with self.connection() as conn:
            for statement in SCHEMA:
                conn.execute(statement.replace("{pk}", pk))

        logger.info(f"Database schema ready ({self.dialect})")

    def table_names(self) -> List[str]:
        """List user tables present in the database."""
        with self.connection() as conn:
            if self.dialect == "sqlite":
                rows = conn.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table'")
                return [row["name"] for row in rows]
            rows = conn.fetch_all(
                "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public'"
            )
            return [row["table_name"] for row in rows]

    def ping(self) -> bool:
        """Run a trivial query; raises StorageError when the database is unreachable."""
        with self.connection() as conn:
            conn.fetch_one("SELECT 1 AS ok")
        return True

    def close(self):
        """Release pooled connections. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._pool is not None:
            self._pool.closeall()
        logger.info("Database connections closed")
