"""Core app configuration, database and security helpers."""

from portfolio_api.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
