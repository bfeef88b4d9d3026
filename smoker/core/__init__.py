"""Core smoker functionality: the client contract and its lifecycle."""

from __future__ import annotations

from smoker.core.base import BaseServiceClient
from smoker.core.client_config import ClientConfig
from smoker.core.interfaces import ServiceClient
from smoker.core.lifecycle import LifecycleState, LifecycleStateMachine

__all__ = [
    "BaseServiceClient",
    "ClientConfig",
    "LifecycleState",
    "LifecycleStateMachine",
    "ServiceClient",
]
