"""Global constants for smoker.

This module contains application-wide constants that are shared by the
service clients, the registries and the behave glue.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ClientType(str, Enum):
    """Closed set of service client types known to the factory."""

    REST = "rest"
    MQTT = "mqtt"
    S3 = "s3"
    CLOUDWATCH = "cloudwatch"
    SSM = "ssm"
    SQS = "sqs"
    KINESIS = "kinesis"
    KAFKA = "kafka"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def all_types(cls) -> list[ClientType]:
        """Return every client type in declaration order."""
        return list(cls)

    @classmethod
    def from_string(cls, value: str) -> ClientType | None:
        """Convert a string to the matching client type.

        Parameters
        ----------
        value : str
            Client type name, case-insensitive

        Returns
        -------
        ClientType | None
            Matching client type, or None when nothing matches
        """
        if not isinstance(value, str):
            return None

        normalized = value.strip().lower()
        for client_type in cls:
            if client_type.value == normalized:
                return client_type
        return None

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Return True if ``value`` names a known client type."""
        return cls.from_string(value) is not None


@dataclass(frozen=True)
class ClientDescriptor:
    """Name and type of one client instance in a registry."""

    name: str
    client_type: ClientType


DEFAULT_REGION = "us-east-1"
"""AWS region used when a client configuration does not name one."""

DEFAULT_CONFIG_FILE = "smoker.yaml"
"""Configuration file looked up when neither an argument nor SMOKER_CONFIG is given."""

CONFIG_ENV_VAR = "SMOKER_CONFIG"
DEBUG_ENV_VAR = "SMOKER_DEBUG"

CLIENT_ID_SEPARATOR = ":"
"""Separator between client type and client id in registry keys (``s3:backup``)."""

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
"""Delay between polls when waiting for records, log events or messages."""

DEFAULT_WAIT_TIMEOUT_SECONDS = 30.0
"""Default budget for wait_for_* operations on the service clients."""

DEFAULT_REST_TIMEOUT_SECONDS = 30.0
"""Per-request timeout for the REST client.

requests has no default timeout, so an unresponsive endpoint would hang a
scenario forever without it.
"""

MQTT_DEFAULT_URL = "mqtt://localhost:1883"
MQTT_DEFAULT_PORT = 1883
MQTT_DEFAULT_TLS_PORT = 8883
MQTT_CONNECT_TIMEOUT_SECONDS = 30.0
MQTT_OPERATION_TIMEOUT_SECONDS = 10.0
MQTT_KEEP_ALIVE_SECONDS = 60

KAFKA_DEFAULT_CLIENT_ID = "smoke-test-client"
KAFKA_DEFAULT_GROUP_ID = "smoke-test-group"
KAFKA_POLL_TIMEOUT_MS = 1000
