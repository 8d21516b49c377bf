"""Configuration module for Person Registry."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
