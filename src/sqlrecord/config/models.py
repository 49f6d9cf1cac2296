"""Pydantic models for database configuration."""

from typing import Literal

from pydantic import BaseModel


# ============================================================================
# Configuration Models
# ============================================================================


Provider = Literal["postgres", "sqlite", "neon", "d1"]


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str = ""
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: Provider = "postgres"
    binding_name: str = "DB"  # D1 only: name of the Workers binding


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    validate_on_connect: bool = True
