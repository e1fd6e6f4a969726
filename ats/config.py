"""
Configuration for the ATS backend.

Secrets and connection strings come from the environment (optionally a
``.env`` file); tunable settings come from an optional YAML file. The
configuration is validated once, at construction, so a missing signing
secret stops the process instead of silently weakening it.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

import yaml

PROJECT_DIR = Path(__file__).parent.parent

SUPPORTED_DB_SCHEMES = ("sqlite", "postgres", "postgresql")

# Environment variables for third-party integrations (recognized, reported at startup)
INTEGRATION_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "linkedin_client_id": "LINKEDIN_CLIENT_ID",
    "linkedin_client_secret": "LINKEDIN_CLIENT_SECRET",
}


class Config:
    """Configuration manager for the ATS backend."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Path to a YAML settings file. When omitted, ``ATS_CONFIG``
                is consulted, then ``./config.yaml``; a missing default file is
                treated as empty.
            environ: Mapping to read environment variables from (defaults to os.environ)

        Raises:
            FileNotFoundError: If an explicitly requested config file does not exist
            ValueError: If required settings are missing or invalid
        """
        self._environ = os.environ if environ is None else environ

        explicit = config_path is not None or bool(self._environ.get("ATS_CONFIG"))
        if config_path is None:
            config_path = Path(self._environ.get("ATS_CONFIG") or PROJECT_DIR / "config.yaml")

        self.config_path = Path(config_path)
        self._config = self._load_config(required=explicit)
        self._validate_config()

    def _load_config(self, required: bool) -> Dict[str, Any]:
        """Load settings from the YAML file."""
        if not self.config_path.exists():
            if required:
                raise FileNotFoundError(
                    f"Config file not found: {self.config_path}\n"
                    f"Copy config.example.yaml to config.yaml or unset ATS_CONFIG."
                )
            return {}

        with open(self.config_path, "r") as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")

        return config

    def _validate_config(self) -> None:
        """Fail fast on settings the server cannot run without."""
        if not self.jwt_secret:
            raise ValueError(
                "JWT_SECRET is not set. Set it in the environment or .env file; "
                "the server refuses to start without a signing secret."
            )

        scheme = urlparse(self.database_url).scheme
        if scheme not in SUPPORTED_DB_SCHEMES:
            raise ValueError(
                f"Unsupported DATABASE_URL scheme '{scheme}'. "
                f"Use one of: {', '.join(SUPPORTED_DB_SCHEMES)}"
            )

        if self.max_upload_bytes <= 0:
            raise ValueError("uploads.max_bytes must be a positive number of bytes")

        if self.token_ttl_hours <= 0:
            raise ValueError("auth.token_ttl_hours must be positive")

    # ===== SECRETS & CONNECTIONS =====

    @property
    def jwt_secret(self) -> str:
        """Get the token signing secret."""
        return (self._environ.get("JWT_SECRET") or "").strip()

    @property
    def database_url(self) -> str:
        """Get the database connection string."""
        default = f"sqlite:///{PROJECT_DIR / 'ats.db'}"
        return self._environ.get("DATABASE_URL") or self.get("database.url", default)

    @property
    def database_pool_size(self) -> int:
        """Get the maximum number of pooled PostgreSQL connections."""
        return int(self.get("database.pool_size", 10))

    @property
    def environment(self) -> str:
        """Get the Flask environment name."""
        return self._environ.get("FLASK_ENV", "development")

    @property
    def integration_keys(self) -> Dict[str, bool]:
        """Report which third-party integration credentials are configured."""
        return {name: bool(self._environ.get(var)) for name, var in INTEGRATION_ENV_VARS.items()}

    # ===== AUTH =====

    @property
    def token_ttl_hours(self) -> float:
        """Get how long issued tokens stay valid."""
        return float(self.get("auth.token_ttl_hours", 2))

    @property
    def reset_code_ttl_minutes(self) -> int:
        """Get how long a password reset code stays valid."""
        return int(self.get("auth.reset_code_ttl_minutes", 60))

    @property
    def expose_reset_codes(self) -> bool:
        """Whether /forgot echoes the reset code back (local development only)."""
        return bool(self.get("auth.expose_reset_codes", False))

    # ===== UPLOADS =====

    @property
    def upload_dir(self) -> Path:
        """Get the directory uploaded files are written to."""
        return Path(self.get("uploads.directory", PROJECT_DIR / "uploads"))

    @property
    def max_upload_bytes(self) -> int:
        """Get the upload size ceiling."""
        return int(self.get("uploads.max_bytes", 5 * 1024 * 1024))

    @property
    def allowed_image_extensions(self) -> List[str]:
        """Get accepted image file extensions (without dot, lower-case)."""
        return [
            ext.lower().lstrip(".")
            for ext in self.get("uploads.allowed_extensions", ["jpg", "jpeg", "png", "gif"])
        ]

    # ===== HTTP =====

    @property
    def cors_origins(self) -> List[str]:
        """Get origins allowed to call the API from a browser."""
        return self.get("http.cors_origins", ["http://localhost:5173"])

    # ===== UTILITY METHODS =====

    def to_dict(self) -> Dict[str, Any]:
        """
        Return a copy of the raw YAML settings.

        Secrets are never part of this mapping.
        """
        return dict(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key.

        Example: config.get('uploads.max_bytes')
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value


# Global config instance
_config: Optional[Config] = None


def get_config(config_path: Optional[Path] = None) -> Config:
    """
    Get global configuration instance.
    Creates instance on first call, then returns cached instance.
    """
    global _config
    if _config is None or config_path is not None:
        _config = Config(config_path=config_path)
    return _config
