"""Base implementation of the service client contract."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, TypeVar

from smoker.core.client_config import ClientConfig
from smoker.core.lifecycle import LifecycleState, LifecycleStateMachine
from smoker.exceptions import ConfigurationError, NotInitializedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseServiceClient(ABC):
    """Common lifecycle and configuration handling for service clients.

    Subclasses implement :meth:`initialize_client` and, when they hold
    resources, :meth:`cleanup_client`. All state transitions are delegated to
    a :class:`LifecycleStateMachine`; the hooks are looked up on every call so
    they can be replaced on an instance (e.g. by ``patch.object`` in tests).

    Parameters
    ----------
    name : str
        Client name identifier
    config : Mapping[str, Any] | None
        Client-specific configuration
    """

    def __init__(self, name: str, config: Mapping[str, Any] | None = None) -> None:
        self._name = name
        self._config = ClientConfig(config)
        self._lifecycle = LifecycleStateMachine(
            name,
            setup=lambda: self.initialize_client(),
            cleanup=lambda: self.cleanup_client(),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, state={self.state.value})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    def is_initialized(self) -> bool:
        return self._lifecycle.is_initialized()

    async def init(self, config: Mapping[str, Any] | None = None) -> None:
        """Initialize the client.

        Parameters
        ----------
        config : Mapping[str, Any] | None
            Values merged over the construction configuration before setup
            runs. Ignored when the client is already initialized.

        Raises
        ------
        Exception
            Whatever :meth:`initialize_client` raised, unchanged
        """
        if config is not None:
            if self.is_initialized():
                logger.debug(
                    "Already initialized, ignoring configuration",
                    extra={"client": self._name},
                )
            else:
                self.configure(config)

        await self._lifecycle.init()

    async def reset(self) -> None:
        await self._lifecycle.reset()

    async def destroy(self) -> None:
        await self._lifecycle.destroy()

    @abstractmethod
    async def initialize_client(self) -> None:
        """Connect or create the underlying SDK handle."""

    async def cleanup_client(self) -> None:
        """Release the underlying SDK handle. Nothing to release by default."""

    def configure(self, config: Mapping[str, Any]) -> None:
        """Bind a new configuration for the next initialization.

        Raises
        ------
        ConfigurationError
            If the client is initialized; destroy it first
        """
        if self.is_initialized():
            raise ConfigurationError(
                f"{self._name} is initialized; destroy it before reconfiguring"
            )
        self._config = self._config.merged(config)

    def get_config(self, key: str, default: T) -> T:
        return self._config.get_config(key, default)

    def get_typed_config(
        self, key: str, default: T, expected_type: type | tuple[type, ...]
    ) -> T:
        return self._config.get_typed(key, default, expected_type)

    def ensure_initialized(self) -> None:
        """Raise NotInitializedError unless init() has completed."""
        if not self.is_initialized():
            raise NotInitializedError(self._name)

    def require_resource(self, resource: T | None) -> T:
        """Return ``resource`` or raise if the client holds no live handle."""
        if resource is None:
            raise NotInitializedError(
                self._name, f"{self._name} has no active connection. Call init() first."
            )
        return resource
