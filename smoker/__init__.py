"""Smoker - smoke-testing harness for external services."""

__version__ = "0.1.0"
