"""Concrete service clients."""
