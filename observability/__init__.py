"""Observability utilities for the draft lifecycle service."""
from .logger import log_event

__all__ = ["log_event"]
