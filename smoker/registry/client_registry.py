"""Scenario-scoped registry of live service clients."""

from __future__ import annotations

import logging
from types import TracebackType

from smoker.constants import CLIENT_ID_SEPARATOR, ClientDescriptor, ClientType
from smoker.core.base import BaseServiceClient
from smoker.exceptions import ClientNotFoundError, TeardownError
from smoker.registry.config_registry import ClientConfigRegistry, config_key
from smoker.registry.factory import ClientFactory

logger = logging.getLogger(__name__)


class ClientRegistry:
    """Hold the clients of one scenario and tear them down together.

    Clients are keyed by their logical name (``type`` or ``type:id``) and
    created lazily through the factory, so there is at most one live
    instance per name. Creation order is kept and reversed on teardown.

    Parameters
    ----------
    factory : ClientFactory | None
        Factory used for lazy creation. Built over ``config_registry`` when
        None
    config_registry : ClientConfigRegistry | None
        Configuration source used when no factory is given
    """

    def __init__(
        self,
        factory: ClientFactory | None = None,
        config_registry: ClientConfigRegistry | None = None,
    ) -> None:
        self.factory = factory or ClientFactory(config_registry)
        self._clients: dict[str, BaseServiceClient] = {}
        self._descriptors: dict[str, ClientDescriptor] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, name: object) -> bool:
        return name in self._clients

    async def __aenter__(self) -> ClientRegistry:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.destroy_all()

    def register_client(
        self,
        name: str,
        client: BaseServiceClient,
        client_type: ClientType | None = None,
    ) -> None:
        """Add an externally created client under ``name``.

        Registering the same instance twice is a no-op.

        Raises
        ------
        ValueError
            If another instance is already registered under ``name``
        """
        existing = self._clients.get(name)
        if existing is client:
            return
        if existing is not None:
            raise ValueError(f"Client already registered: {name}")

        self._clients[name] = client
        if client_type is not None:
            self._descriptors[name] = ClientDescriptor(name=client.name, client_type=client_type)
        logger.debug("Registered client %s", name, extra={"client": client.name})

    def get_client(
        self, client_type: ClientType | str, client_id: str | None = None
    ) -> BaseServiceClient:
        """Return the client for ``type``/``id``, creating it on first use.

        The returned client may still be uninitialized.
        """
        resolved = ClientType.from_string(str(client_type))
        if resolved is None:
            raise ValueError(f"Unknown client type: {client_type}")

        name = config_key(resolved, client_id)
        client = self._clients.get(name)
        if client is None:
            client = self.factory.create_client(resolved, client_id)
            self.register_client(name, client, resolved)
        return client

    async def get_initialized_client(
        self, client_type: ClientType | str, client_id: str | None = None
    ) -> BaseServiceClient:
        client = self.get_client(client_type, client_id)
        await client.init()
        return client

    def get(self, name: str) -> BaseServiceClient:
        """Return a registered client by logical name.

        Raises
        ------
        ClientNotFoundError
            If no client is registered under ``name``
        """
        if name not in self._clients:
            raise ClientNotFoundError(name)
        return self._clients[name]

    def has_client(self, name: str) -> bool:
        return name in self._clients

    def names(self) -> list[str]:
        return list(self._clients)

    def clients(self) -> list[BaseServiceClient]:
        return list(self._clients.values())

    def descriptors(self) -> list[ClientDescriptor]:
        return list(self._descriptors.values())

    def create_configured_clients(self) -> list[BaseServiceClient]:
        """Create one client for every configuration in the config registry.

        Keys that do not name a known client type are skipped with a warning.
        """
        created = []
        for key in self.factory.config_registry.all_configs():
            type_value, _, client_id = key.partition(CLIENT_ID_SEPARATOR)
            client_type = ClientType.from_string(type_value)
            if client_type is None:
                logger.warning("Skipping configuration with unknown client type: %s", key)
                continue
            created.append(self.get_client(client_type, client_id or None))
        return created

    async def initialize_all(self) -> None:
        for client in list(self._clients.values()):
            await client.init()

    async def reset_all(self) -> None:
        for client in list(self._clients.values()):
            await client.reset()

    async def destroy_all(self) -> None:
        """Destroy every client, newest first, and empty the registry.

        Every client gets its destroy() call even when an earlier one fails.

        Raises
        ------
        TeardownError
            After all clients were processed, if any destroy() failed
        """
        failures: dict[str, Exception] = {}

        for name, client in reversed(list(self._clients.items())):
            try:
                await client.destroy()
            except Exception as e:
                logger.warning(
                    "Failed to destroy client %s: %s", name, e, extra={"client": client.name}
                )
                failures[name] = e

        self._clients.clear()
        self._descriptors.clear()

        if failures:
            raise TeardownError(failures)
