"""Logging helpers for smoker."""

from smoker.logging.formatters import ClientFormatter

__all__ = ["ClientFormatter"]
