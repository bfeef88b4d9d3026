"""Client configuration, creation and scenario-scoped ownership."""

from __future__ import annotations

from smoker.registry.client_registry import ClientRegistry
from smoker.registry.config_registry import ClientConfigRegistry, config_key
from smoker.registry.factory import (
    ClientFactory,
    get_client_class,
    list_client_types,
    register_client_type,
)

__all__ = [
    "ClientConfigRegistry",
    "ClientFactory",
    "ClientRegistry",
    "config_key",
    "get_client_class",
    "list_client_types",
    "register_client_type",
]
