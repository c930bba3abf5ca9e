"""
Configuration management for Backend Stellark.

Loads settings from environment variables and the optional project-root .env.
Exposes a single source of truth for all service configuration.
"""

from backend_stellark.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
