"""Database handle factory.

Resolves a connection profile and builds the matching executor and
``Database`` handle.

Supports two configuration modes:
1. Profile mode (db.toml + .db-profile): named profiles, one per environment
2. Direct mode (``database_url=``): a single URL, provider inferred from the scheme

Usage:
    from sqlrecord.factory import connect_and_validate, get_database

    result = await connect_and_validate("dev", expected_tables=[articles, comments])
    if result.success:
        db = await get_database()          # uses the validated profile
        db.register(Article, Comment)
"""

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import quote

from sqlrecord.adapters.base import Executor
from sqlrecord.adapters.d1 import D1Executor
from sqlrecord.adapters.neon import NeonHTTPExecutor
from sqlrecord.adapters.postgres import AsyncPostgresExecutor
from sqlrecord.adapters.sqlite import AsyncSQLiteExecutor
from sqlrecord.config import load_db_config
from sqlrecord.config.models import DatabaseProfile
from sqlrecord.database import Database
from sqlrecord.errors import ConfigurationError, ExecutionError
from sqlrecord.registry import ModelRegistry
from sqlrecord.schema.comparator import validate_schema
from sqlrecord.schema.introspector import SchemaIntrospector
from sqlrecord.schema.models import ConnectionResult, TableDef

# Profile lock file path (relative to the working directory)
_PROFILE_LOCK_FILE = Path(".db-profile")


# ============================================================================
# Profile Lock File Operations
# ============================================================================


class ProfileNotFoundError(ConfigurationError):
    """Raised when no database profile is configured."""


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file.

    Only call this after a successful connect-and-validate.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    if _PROFILE_LOCK_FILE.exists():
        _PROFILE_LOCK_FILE.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. ``{env_prefix}DB_PROFILE`` env var (for initial connect or CI/CD)
    2. .db-profile file (validated profile from previous connect)
    3. Raise ProfileNotFoundError

    Args:
        env_prefix: Prefix for the environment variable, e.g. ``"MYAPP_"``
            reads ``MYAPP_DB_PROFILE``.

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No sqlrecord database profile configured.\n"
        f"Set {env_var}=<name> or call connect_and_validate(<name>) "
        "to select a profile from db.toml."
    )


def get_active_profile(
    env_prefix: str = "", config_path: Path | str | None = None
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or the profile is
            not in db.toml.
        ConfigurationError: If db.toml is missing or invalid.
    """
    profile_name = get_active_profile_name(env_prefix)
    config = load_db_config(config_path)

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with ``[YOUR-PASSWORD]`` substitution (URL-encoded)."""
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Executor / Database Construction
# ============================================================================


def provider_for_url(database_url: str) -> str:
    """Infer the provider from a URL scheme (``sqlite`` or ``postgres``)."""
    scheme = database_url.split("://", 1)[0].lower() if "://" in database_url else ""
    if scheme.startswith("sqlite") or not scheme:
        return "sqlite"
    if scheme.startswith("postgres"):
        return "postgres"
    raise ConfigurationError(f"Unsupported database URL scheme: {scheme}://")


def create_executor(profile: DatabaseProfile, *, binding: Any = None) -> Executor:
    """Build the executor for *profile*.

    Args:
        profile: Connection profile.
        binding: D1 database binding (required when ``provider == "d1"``).

    Raises:
        ConfigurationError: If the profile lacks what its provider needs.
    """
    if profile.provider == "d1":
        if binding is None:
            raise ConfigurationError(
                f"D1 profile requires the '{profile.binding_name}' database binding"
            )
        return D1Executor(binding)

    url = resolve_url(profile)
    if not url:
        raise ConfigurationError(f"{profile.provider} profile has no url")

    if profile.provider == "sqlite":
        return AsyncSQLiteExecutor(url)
    if profile.provider == "neon":
        return NeonHTTPExecutor(url)
    return AsyncPostgresExecutor(url)


async def get_database(
    profile_name: str | None = None,
    *,
    database_url: str | None = None,
    env_prefix: str = "",
    config_path: Path | str | None = None,
    binding: Any = None,
    registry: ModelRegistry | None = None,
) -> Database:
    """Create a new ``Database`` handle.  No caching.

    Args:
        profile_name: Profile in db.toml.  Defaults to the active profile.
        database_url: Direct URL; bypasses profile resolution entirely.
        env_prefix: Prefix for the ``DB_PROFILE`` environment variable.
        config_path: Path to db.toml (default: ./db.toml).
        binding: D1 database binding for ``provider = "d1"`` profiles.
        registry: Model registry for the handle.

    Raises:
        ProfileNotFoundError: If no profile is configured.
        ConfigurationError: If configuration is missing or invalid.
    """
    if database_url:
        profile = DatabaseProfile(url=database_url, provider=provider_for_url(database_url))
    elif profile_name is not None:
        config = load_db_config(config_path)
        if profile_name not in config.profiles:
            raise ProfileNotFoundError(
                f"Profile '{profile_name}' not found. "
                f"Available: {', '.join(config.profiles.keys())}"
            )
        profile = config.profiles[profile_name]
    else:
        _, profile = get_active_profile(env_prefix, config_path)

    return Database(create_executor(profile, binding=binding), registry=registry)


# ============================================================================
# Connection and Validation
# ============================================================================


async def connect_and_validate(
    profile_name: str | None = None,
    expected_tables: Sequence[TableDef] | None = None,
    *,
    env_prefix: str = "",
    validate_only: bool = False,
    config_path: Path | str | None = None,
    binding: Any = None,
) -> ConnectionResult:
    """Connect to a profile's database and validate its schema.

    Pings the backend, introspects live column names and compares them to
    *expected_tables*.  On success the profile name is written to the
    .db-profile lock file (unless *validate_only*), so later
    ``get_database()`` calls pick it up.

    Returns:
        ConnectionResult with success status and validation report.
        Failures are reported on the result, not raised.

    Example:
        >>> result = await connect_and_validate("dev", [articles])
        >>> if not result.success:
        ...     print(result.error)
    """
    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix)
        except ProfileNotFoundError as e:
            return ConnectionResult(success=False, error=str(e))

    try:
        config = load_db_config(config_path)
    except ConfigurationError as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Profile '{profile_name}' not found. Available: {available}",
        )
    profile = config.profiles[profile_name]

    try:
        db = Database(create_executor(profile, binding=binding))
    except ConfigurationError as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    try:
        await db.ping()
        introspector = SchemaIntrospector(db)
        actual_columns = await introspector.get_column_names()
    except ExecutionError as e:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )
    finally:
        await db.close()

    if expected_tables is None or not config.validate_on_connect:
        if not validate_only:
            write_profile_lock(profile_name)
        return ConnectionResult(success=True, profile_name=profile_name)

    validation = validate_schema(actual_columns, expected_tables)

    if validation.valid:
        if not validate_only:
            write_profile_lock(profile_name)
        return ConnectionResult(
            success=True,
            profile_name=profile_name,
            schema_valid=True,
            schema_report=validation,
        )

    # Schema invalid - return report but don't write lock
    return ConnectionResult(
        success=False,
        profile_name=profile_name,
        schema_valid=False,
        schema_report=validation,
        error=f"Schema validation failed: {validation.error_count} errors",
    )
