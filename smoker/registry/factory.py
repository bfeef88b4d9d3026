"""Client type table and the factory that builds clients from it.

Client classes are registered per :class:`ClientType`. The built-in clients
are registered at the bottom of this module; projects can register their
own classes (or replace a built-in one) with :func:`register_client_type`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from smoker.constants import ClientType
from smoker.core.base import BaseServiceClient
from smoker.registry.config_registry import ClientConfigRegistry

logger = logging.getLogger(__name__)

_CLIENT_TYPES: dict[ClientType, type[BaseServiceClient]] = {}


def _coerce_type(client_type: ClientType | str) -> ClientType:
    if isinstance(client_type, ClientType):
        return client_type

    resolved = ClientType.from_string(client_type)
    if resolved is None:
        raise ValueError(f"Unknown client type: {client_type}")
    return resolved


def register_client_type(
    client_type: ClientType | str, client_class: type[BaseServiceClient]
) -> None:
    """Register the class used to build clients of ``client_type``.

    Parameters
    ----------
    client_type : ClientType | str
        Client type tag
    client_class : type[BaseServiceClient]
        Class constructed as ``client_class(name, config)``
    """
    _CLIENT_TYPES[_coerce_type(client_type)] = client_class


def get_client_class(client_type: ClientType | str) -> type[BaseServiceClient]:
    """Get the class registered for a client type.

    Raises
    ------
    ValueError
        If the type is unknown or has no registered class
    """
    resolved = _coerce_type(client_type)
    if resolved not in _CLIENT_TYPES:
        raise ValueError(f"Unknown client type: {client_type}")
    return _CLIENT_TYPES[resolved]


def list_client_types() -> list[ClientType]:
    return list(_CLIENT_TYPES.keys())


class ClientFactory:
    """Create service clients from registered configurations.

    Parameters
    ----------
    config_registry : ClientConfigRegistry | None
        Source of client configurations. A fresh empty registry when None
    client_classes : Mapping[ClientType | str, type[BaseServiceClient]] | None
        Per-factory overrides of the module-level type table
    """

    def __init__(
        self,
        config_registry: ClientConfigRegistry | None = None,
        client_classes: Mapping[ClientType | str, type[BaseServiceClient]] | None = None,
    ) -> None:
        self.config_registry = config_registry or ClientConfigRegistry()
        self.client_classes: dict[ClientType, type[BaseServiceClient]] = {
            _coerce_type(t): cls for t, cls in (client_classes or {}).items()
        }

    def client_class(self, client_type: ClientType | str) -> type[BaseServiceClient]:
        resolved = _coerce_type(client_type)
        if resolved in self.client_classes:
            return self.client_classes[resolved]
        return get_client_class(resolved)

    def create_client(
        self, client_type: ClientType | str, client_id: str | None = None
    ) -> BaseServiceClient:
        """Create an uninitialized client.

        The client is named after ``client_id`` when given, otherwise after
        the ``id`` entry of its configuration, otherwise after its type.

        Raises
        ------
        ValueError
            If the client type is unknown
        """
        resolved = _coerce_type(client_type)
        client_class = self.client_class(resolved)
        config = self.config_registry.get_config(resolved, client_id)
        values: dict[str, Any] = dict(config) if config is not None else {}

        configured_id = values.get("id")
        if client_id:
            name = client_id
        elif isinstance(configured_id, str) and configured_id:
            name = configured_id
        else:
            name = resolved.value

        logger.debug("Creating %s client %s", resolved.value, name)
        return client_class(name, values)

    async def create_and_initialize(
        self, client_type: ClientType | str, client_id: str | None = None
    ) -> BaseServiceClient:
        client = self.create_client(client_type, client_id)
        await client.init()
        return client


def _register_builtin_clients() -> None:
    from smoker.clients.aws import (
        CloudWatchClient,
        KinesisClient,
        S3Client,
        SqsClient,
        SsmClient,
    )
    from smoker.clients.http import RestClient
    from smoker.clients.messaging import KafkaClient, MqttClient

    register_client_type(ClientType.REST, RestClient)
    register_client_type(ClientType.MQTT, MqttClient)
    register_client_type(ClientType.S3, S3Client)
    register_client_type(ClientType.CLOUDWATCH, CloudWatchClient)
    register_client_type(ClientType.SSM, SsmClient)
    register_client_type(ClientType.SQS, SqsClient)
    register_client_type(ClientType.KINESIS, KinesisClient)
    register_client_type(ClientType.KAFKA, KafkaClient)


_register_builtin_clients()
