"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from sqlrecord.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from sqlrecord.config.loader import load_db_config
from sqlrecord.config.models import DatabaseConfig, DatabaseProfile

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile"]
