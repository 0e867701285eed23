"""Configuration module for backend services."""

from brandmind.config.settings import Settings

__all__ = [
    "Settings",
]
