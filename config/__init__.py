"""Configuration package for the draft lifecycle services."""
from .settings import Settings, settings

__all__ = [
    "Settings",
    "settings",
]
