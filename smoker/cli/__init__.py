"""Command line interface."""

from __future__ import annotations

from smoker.cli.main import SmokerCLI, main

__all__ = ["SmokerCLI", "main"]
