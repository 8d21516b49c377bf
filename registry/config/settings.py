"""
Person Registry Configuration Settings

This module contains all configuration constants for the registry server
and client. Every value can be overridden through a REGISTRY_* environment
variable.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Server and client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("REGISTRY_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("REGISTRY_PORT", "7272"))

    # Store settings
    DATA_FILE: str = os.environ.get("REGISTRY_DATA_FILE", "persons.json")
    STRICT_RENAME: bool = os.environ.get("REGISTRY_STRICT_RENAME", "false").lower() == "true"
    MAX_NAME_LENGTH: int = int(os.environ.get("REGISTRY_MAX_NAME_LENGTH", "1024"))

    # Connection settings
    # Request lines are short; LIST and SEARCH replies carry every matching
    # record on one line, so replies get a much larger limit
    READ_BUFFER_SIZE: int = 64 * 1024
    RESPONSE_BUFFER_SIZE: int = int(os.environ.get("REGISTRY_RESPONSE_BUFFER_SIZE", str(64 * 1024 * 1024)))
    REQUEST_TIMEOUT: float = float(os.environ.get("REGISTRY_REQUEST_TIMEOUT", "5.0"))

    # Client cache settings (0 means unbounded)
    CACHE_MAX_ENTRIES: int = int(os.environ.get("REGISTRY_CACHE_MAX_ENTRIES", "0"))

    # Logging settings
    DEBUG: bool = os.environ.get("REGISTRY_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("REGISTRY_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
