"""Configuration module for mcollector."""

from mcollector.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
