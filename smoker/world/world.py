"""Per-scenario state shared by behave steps."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, TypeVar

from omegaconf import OmegaConf

from smoker.constants import ClientType
from smoker.core.base import BaseServiceClient
from smoker.exceptions import ERR_CONFIG_MISSING, ConfigurationError, ValidationError
from smoker.registry import ClientConfigRegistry, ClientFactory, ClientRegistry, config_key
from smoker.world.parameters import ParameterResolver
from smoker.world.properties import WorldProperties

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG_REFERENCE_PATTERN = re.compile(r"config:([a-zA-Z0-9_$]+(?:\.[a-zA-Z0-9_$]+)*)")


class SmokeWorld:
    """Clients, properties and last results of one behave scenario.

    The world owns a config registry, a factory and a client registry, so
    every client it creates is destroyed by :meth:`destroy_clients`.

    Parameters
    ----------
    client_configs : Mapping[str, Any] | None
        Client configurations keyed by ``type`` or ``type:id``. A client is
        created (not initialized) for each entry
    settings : Mapping[str, Any] | None
        Values reachable from step parameters as ``config:dotted.path``
    registry : ClientRegistry | None
        Client registry to use instead of a fresh one
    parameter_resolver : ParameterResolver | None
        Resolver for ``ssm://`` and ``s3://...json`` references. A resolver
        using the default AWS region when None
    """

    def __init__(
        self,
        client_configs: Mapping[str, Any] | None = None,
        settings: Mapping[str, Any] | None = None,
        registry: ClientRegistry | None = None,
        parameter_resolver: ParameterResolver | None = None,
    ) -> None:
        if registry is None:
            config_registry = ClientConfigRegistry()
            registry = ClientRegistry(ClientFactory(config_registry))

        self.registry = registry
        self.factory = registry.factory
        self.config_registry = registry.factory.config_registry
        self.properties = WorldProperties()
        self.parameter_resolver = parameter_resolver or ParameterResolver()
        self.settings = OmegaConf.create(dict(settings or {}))

        self._last_response: Any = None
        self._last_content: Any = None
        self._last_error: BaseException | None = None

        if client_configs:
            self.config_registry.register_configs(client_configs)
            self.registry.create_configured_clients()

    def register_client(self, name: str, client: BaseServiceClient) -> None:
        self.registry.register_client(name, client)

    def get_client(self, name: str) -> BaseServiceClient:
        """Return a registered client by name.

        Raises
        ------
        ClientNotFoundError
            If no client is registered under ``name``
        """
        return self.registry.get(name)

    def has_client(self, name: str) -> bool:
        return self.registry.has_client(name)

    def create_client(
        self, client_type: ClientType | str, client_id: str | None = None
    ) -> BaseServiceClient:
        """Create a client that the world does not track."""
        return self.factory.create_client(client_type, client_id)

    def register_client_with_config(
        self,
        client_type: ClientType | str,
        config: Mapping[str, Any],
        client_id: str | None = None,
    ) -> BaseServiceClient:
        """Register a configuration and create a tracked client from it.

        The client is registered as ``type`` or ``type:id``, where the id is
        ``client_id`` or else the ``id`` entry of ``config``.

        Raises
        ------
        ValueError
            If a different client already holds the resulting name
        """
        resolved = ClientType.from_string(str(client_type))
        if resolved is None:
            raise ValueError(f"Unknown client type: {client_type}")

        self.config_registry.register_config(resolved, config, client_id)

        configured_id = config.get("id")
        effective_id = client_id or (configured_id if isinstance(configured_id, str) else None)

        client = self.factory.create_client(resolved, effective_id)
        self.registry.register_client(config_key(resolved, effective_id), client, resolved)
        return client

    async def initialize_clients(self, client_configs: Mapping[str, Any] | None = None) -> None:
        """Initialize every tracked client, registering ``client_configs`` first.

        ``ssm://`` and ``s3://...json`` references in ``client_configs`` are
        resolved before the configurations are registered.
        """
        if client_configs:
            resolved = await self.parameter_resolver.resolve_config(client_configs)
            self.config_registry.register_configs(resolved)
            self.registry.create_configured_clients()
        await self.registry.initialize_all()

    async def reset_clients(self) -> None:
        await self.registry.reset_all()

    async def destroy_clients(self) -> None:
        """Destroy every tracked client and the parameter resolver's clients.

        Raises
        ------
        TeardownError
            If one or more clients failed to destroy
        """
        try:
            await self.registry.destroy_all()
        finally:
            await self.parameter_resolver.close()

    def set_property(self, key: str, value: Any) -> None:
        self.properties.set(key, value)

    def get_property(self, key: str, default: T | None = None) -> Any | T | None:
        return self.properties.get(key, default)

    def has_property(self, key: str) -> bool:
        return self.properties.has(key)

    def delete_property(self, key: str) -> None:
        """Remove a property.

        Raises
        ------
        ValidationError
            If the property is not set
        """
        if not self.properties.delete(key):
            raise ValidationError(
                f"Property not found: {key}", details={"component": "world", "key": key}
            )

    async def resolve_config_value(self, value: str) -> str:
        """Replace ``config:dotted.path`` references with values from settings.

        Setting values that are ``ssm://`` or ``s3://...json`` references are
        resolved before they are substituted.

        Raises
        ------
        ConfigurationError
            If a referenced path has no value
        """
        parts = []
        position = 0
        for match in CONFIG_REFERENCE_PATTERN.finditer(value):
            parts.append(value[position : match.start()])
            parts.append(await self._setting(match.group(1)))
            position = match.end()
        parts.append(value[position:])
        return "".join(parts)

    async def _setting(self, path: str) -> str:
        value = OmegaConf.select(self.settings, path, default=None)
        if value is None:
            raise ConfigurationError(
                f"Configuration value not found: {path}",
                key=path,
                code=ERR_CONFIG_MISSING,
            )
        if isinstance(value, str):
            value = await self.parameter_resolver.resolve_value(value)
        return str(value)

    async def resolve_param(self, param: Any) -> Any:
        """Resolve references in a step parameter.

        Strings go through ``config:`` substitution, then ``property:``
        lookup, then ``ssm://`` and ``s3://...json`` resolution, so an
        ``s3://`` reference may resolve to a parsed JSON document rather than
        a string. Lists and mappings are resolved element by element. Other
        values are returned unchanged.
        """
        if isinstance(param, str):
            resolved = await self.resolve_config_value(param)
            if self.properties.is_property_reference(resolved):
                resolved = self.properties.resolve(resolved)
            return await self.parameter_resolver.resolve_value(resolved)

        if isinstance(param, list):
            return [await self.resolve_param(item) for item in param]

        if isinstance(param, Mapping):
            return {key: await self.resolve_param(value) for key, value in param.items()}

        return param

    def attach_response(self, response: Any) -> None:
        self._last_response = response

    def get_last_response(self) -> Any:
        return self._last_response

    def attach_content(self, content: Any) -> None:
        self._last_content = content

    def get_last_content(self) -> Any:
        return self._last_content

    def attach_error(self, error: BaseException | None) -> None:
        if error is not None:
            logger.debug("Attached error %s: %s", type(error).__name__, error)
        self._last_error = error

    def get_last_error(self) -> BaseException | None:
        return self._last_error
