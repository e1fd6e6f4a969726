"""
Startup validation and health checks for the ATS backend.

Validates environment, configuration, and service dependencies
before the application starts.
"""

import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ats.config import INTEGRATION_ENV_VARS, Config
from ats.database import CRITICAL_TABLES, Database
from ats.logging_config import LOGS_DIR, get_logger

logger = get_logger(__name__)

MIN_SECRET_LENGTH = 32


class ValidationResult:
    """Result of a validation check."""

    def __init__(
        self,
        name: str,
        passed: bool,
        message: str,
        severity: str = "error",  # error, warning, info
        fix_hint: Optional[str] = None,
    ):
        self.name = name
        self.passed = passed
        self.message = message
        self.severity = severity
        self.fix_hint = fix_hint

    def __str__(self) -> str:
        status = "PASS" if self.passed else self.severity.upper()
        return f"[{status}] {self.name}: {self.message}"


def validate_environment(config: Config) -> List[ValidationResult]:
    """
    Validate secrets and connection settings.

    Returns:
        List of validation results
    """
    results = []

    if len(config.jwt_secret) < MIN_SECRET_LENGTH:
        results.append(
            ValidationResult(
                name="JWT Secret",
                passed=False,
                message=f"JWT_SECRET is shorter than {MIN_SECRET_LENGTH} characters",
                severity="warning",
                fix_hint='Generate one with: python -c "import secrets; print(secrets.token_hex(32))"',
            )
        )
    else:
        results.append(
            ValidationResult(name="JWT Secret", passed=True, message="Signing secret configured", severity="info")
        )

    dialect = config.database_url.split(":", 1)[0]
    results.append(
        ValidationResult(
            name="Database URL",
            passed=True,
            message=f"Using {dialect} database",
            severity="info",
        )
    )

    # Integration keys are recognized but optional
    for name, configured in config.integration_keys.items():
        env_var = INTEGRATION_ENV_VARS[name]
        results.append(
            ValidationResult(
                name=f"Integration: {env_var}",
                passed=configured,
                message="configured" if configured else "not set (optional)",
                severity="info",
            )
        )

    results.append(
        ValidationResult(
            name="Flask Environment",
            passed=True,
            message=f"Running in {config.environment} mode",
            severity="info",
        )
    )

    return results


def _check_directory(name: str, path: Path, required: bool) -> ValidationResult:
    severity = "error" if required else "warning"
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
            return ValidationResult(
                name=name, passed=True, message=f"Created directory: {path}", severity="info"
            )
        except OSError as e:
            return ValidationResult(
                name=name,
                passed=False,
                message=f"Cannot create directory: {e}",
                severity=severity,
                fix_hint="Create directory manually or check permissions",
            )

    if not os.access(path, os.W_OK):
        return ValidationResult(
            name=name,
            passed=False,
            message=f"No write permission for directory: {path}",
            severity=severity,
            fix_hint="Fix directory permissions: chmod 755",
        )

    return ValidationResult(name=name, passed=True, message=f"{path} is writable", severity="info")


def validate_file_system(config: Config) -> List[ValidationResult]:
    """
    Validate file system paths and permissions.

    Returns:
        List of validation results
    """
    results = [
        _check_directory("Upload Directory", config.upload_dir, required=True),
        _check_directory("Logs Directory", LOGS_DIR, required=False),
    ]

    if config.database_url.startswith("sqlite"):
        db_dir = Database(config.database_url).path.parent
        results.append(_check_directory("Database Directory", db_dir, required=True))

    return results


def validate_database(config: Config) -> List[ValidationResult]:
    """
    Validate database connection and schema.

    Returns:
        List of validation results
    """
    results = []

    db = None
    try:
        db = Database(config.database_url, config.database_pool_size)
        db.init_schema()

        results.append(
            ValidationResult(
                name="Database Connection",
                passed=True,
                message="Database initialized successfully",
                severity="info",
            )
        )

        existing = set(db.table_names())
        for table in CRITICAL_TABLES:
            if table in existing:
                results.append(
                    ValidationResult(
                        name=f"Table: {table}",
                        passed=True,
                        message=f"Table '{table}' exists",
                        severity="info",
                    )
                )
            else:
                results.append(
                    ValidationResult(
                        name=f"Table: {table}",
                        passed=False,
                        message=f"Critical table '{table}' missing",
                        severity="error",
                    )
                )

    except Exception as e:
        results.append(
            ValidationResult(
                name="Database Connection",
                passed=False,
                message=f"Database error: {e}",
                severity="error",
                fix_hint="Check DATABASE_URL and that the database server is reachable",
            )
        )
    finally:
        if db is not None:
            db.close()

    return results


def validate_dependencies(config: Config) -> List[ValidationResult]:
    """
    Validate Python package dependencies.

    Returns:
        List of validation results
    """
    results = []

    critical_packages = [
        ("flask", "Flask web framework", "flask"),
        ("flask_cors", "CORS support", "flask-cors"),
        ("jwt", "PyJWT token signing", "PyJWT"),
        ("yaml", "YAML configuration", "pyyaml"),
        ("reportlab", "PDF export", "reportlab"),
        ("docx", "DOCX export", "python-docx"),
        ("pypdf", "PDF resume import", "pypdf"),
        ("psycopg2", "PostgreSQL driver", "psycopg2-binary"),
    ]

    for package, description, dist in critical_packages:
        try:
            __import__(package)
            results.append(
                ValidationResult(
                    name=f"Package: {package}",
                    passed=True,
                    message=f"{description} available",
                    severity="info",
                )
            )
        except ImportError:
            results.append(
                ValidationResult(
                    name=f"Package: {package}",
                    passed=False,
                    message=f"{description} not installed",
                    severity="error",
                    fix_hint=f"Run: pip install {dist}",
                )
            )

    return results


def run_startup_validation(
    config: Optional[Config] = None, strict: bool = False, log_results: bool = True
) -> Tuple[bool, List[ValidationResult]]:
    """
    Run all startup validations.

    Args:
        config: Configuration to validate (defaults to the global one)
        strict: If True, treat warnings as errors
        log_results: If True, log validation results

    Returns:
        Tuple of (all_passed, results)
    """
    if config is None:
        from ats.config import get_config

        config = get_config()

    all_results = []

    validators = [
        ("Environment", validate_environment),
        ("File System", validate_file_system),
        ("Database", validate_database),
        ("Dependencies", validate_dependencies),
    ]

    for category, validator in validators:
        try:
            all_results.extend(validator(config))
        except Exception as e:
            all_results.append(
                ValidationResult(
                    name=f"{category} Validation",
                    passed=False,
                    message=f"Validation failed with error: {e}",
                    severity="error",
                )
            )

    if log_results:
        logger.info("=" * 60)
        logger.info("STARTUP VALIDATION RESULTS")
        logger.info("=" * 60)

        for result in all_results:
            if result.passed:
                logger.info(str(result))
            elif result.severity == "error":
                logger.error(str(result))
                if result.fix_hint:
                    logger.error(f"  Hint: {result.fix_hint}")
            elif result.severity == "warning":
                logger.warning(str(result))
                if result.fix_hint:
                    logger.warning(f"  Hint: {result.fix_hint}")
            else:
                logger.info(str(result))

        logger.info("=" * 60)

    errors = [r for r in all_results if not r.passed and r.severity == "error"]
    warnings = [r for r in all_results if not r.passed and r.severity == "warning"]

    if errors:
        logger.error(f"Startup validation failed with {len(errors)} error(s)")
        return False, all_results

    if strict and warnings:
        logger.error(f"Startup validation failed with {len(warnings)} warning(s) (strict mode)")
        return False, all_results

    logger.info("Startup validation passed")
    return True, all_results


def get_health_status(db: Database) -> Dict:
    """
    Get current health status for health check endpoint.

    Returns:
        Health status dictionary
    """
    status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
    }

    try:
        db.ping()
        status["checks"]["database"] = {"status": "healthy", "dialect": db.dialect}
    except Exception as e:
        logger.error(f"❌ Health check database failure: {e}")
        status["status"] = "unhealthy"
        status["checks"]["database"] = {"status": "unhealthy"}

    try:
        total, used, free = shutil.disk_usage(Path(__file__).parent.parent)
        free_gb = free / (1024**3)
        status["checks"]["disk"] = {
            "status": "healthy" if free_gb > 1 else "warning",
            "free_gb": round(free_gb, 2),
        }
        if free_gb < 0.5:
            status["status"] = "unhealthy"
    except OSError as e:
        status["checks"]["disk"] = {"status": "unknown", "error": str(e)}

    return status
