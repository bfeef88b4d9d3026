"""MQTT client for message broker interactions."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
import uuid
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from smoker.constants import (
    DEFAULT_WAIT_TIMEOUT_SECONDS,
    MQTT_CONNECT_TIMEOUT_SECONDS,
    MQTT_DEFAULT_PORT,
    MQTT_DEFAULT_TLS_PORT,
    MQTT_DEFAULT_URL,
    MQTT_KEEP_ALIVE_SECONDS,
    MQTT_OPERATION_TIMEOUT_SECONDS,
)
from smoker.core.base import BaseServiceClient
from smoker.exceptions import (
    ClientOperationError,
    InitializationError,
    MqttConnectionError,
    ValidationError,
    describe_error,
)

logger = logging.getLogger(__name__)

TLS_SCHEMES = ("mqtts", "ssl", "tls")


def default_mqtt_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)


def _as_topic_list(topics: str | list[str]) -> list[str]:
    return [topics] if isinstance(topics, str) else list(topics)


class MqttClient(BaseServiceClient):
    """Publish and subscribe on an MQTT broker via paho-mqtt.

    paho runs its network loop on a background thread. Incoming messages are
    buffered per subscription in thread-safe queues, and ``wait_for_message``
    pulls from them in a worker thread so the event loop never blocks.

    Recognised configuration keys: ``url`` (default
    ``mqtt://localhost:1883``), ``client_id``, ``username``, ``password``,
    ``keep_alive``, ``connect_timeout`` and ``publish_timeout`` (seconds).

    Parameters
    ----------
    name : str
        Client name identifier
    config : Mapping[str, Any] | None
        Client-specific configuration
    mqtt_client_factory : Callable[[str], mqtt.Client] | None
        Optional factory taking a client id and returning a paho client
    """

    component = "mqtt"

    def __init__(
        self,
        name: str = "MqttClient",
        config: Mapping[str, Any] | None = None,
        mqtt_client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        super().__init__(name, config)
        self.mqtt_client_factory = mqtt_client_factory or default_mqtt_client_factory
        self.client: Any | None = None
        self.url = ""
        self.client_id = ""
        self._connected = threading.Event()
        self._connect_result: Any = None
        self._subscriptions: dict[str, queue.Queue[bytes]] = {}
        self._subscriptions_lock = threading.Lock()

    async def initialize_client(self) -> None:
        self.url = self.get_typed_config("url", MQTT_DEFAULT_URL, str)
        if not self.url:
            raise InitializationError("MQTT client requires a broker URL", client_name=self.name)

        parsed = urlparse(self.url)
        if not parsed.hostname:
            raise InitializationError(
                f"Invalid MQTT broker URL: {self.url}", client_name=self.name
            )

        self.client_id = self.get_typed_config(
            "client_id", f"smoker-{uuid.uuid4().hex[:8]}", str
        )
        use_tls = parsed.scheme in TLS_SCHEMES
        port = parsed.port or (MQTT_DEFAULT_TLS_PORT if use_tls else MQTT_DEFAULT_PORT)
        keep_alive = self.get_typed_config("keep_alive", MQTT_KEEP_ALIVE_SECONDS, int)
        connect_timeout = self.get_typed_config(
            "connect_timeout", MQTT_CONNECT_TIMEOUT_SECONDS, (int, float)
        )

        client = self.mqtt_client_factory(self.client_id)

        username = self.get_typed_config("username", "", str)
        if username:
            client.username_pw_set(username, self.get_typed_config("password", "", str) or None)
        if use_tls:
            client.tls_set()

        self._connected.clear()
        self._connect_result = None
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        try:
            await asyncio.to_thread(client.connect, parsed.hostname, port, keep_alive)
        except OSError as e:
            raise MqttConnectionError(
                f"MQTT connection error: {describe_error(e)}", self.url, self.client_id
            ) from e

        client.loop_start()

        connected = await asyncio.to_thread(self._connected.wait, connect_timeout)
        if not connected or self._connect_result_failed():
            client.loop_stop()
            client.disconnect()
            reason = (
                f"Connection timeout after {connect_timeout}s"
                if not connected
                else f"Broker refused connection: {self._connect_result}"
            )
            raise MqttConnectionError(reason, self.url, self.client_id)

        self.client = client
        logger.debug(
            "Connected to %s as %s", self.url, self.client_id, extra={"client": self.name}
        )

    async def cleanup_client(self) -> None:
        with self._subscriptions_lock:
            self._subscriptions.clear()

        client = self.client
        if client is None:
            return

        try:
            client.disconnect()
        finally:
            client.loop_stop()
            self._connected.clear()
        self.client = None

    def _connect_result_failed(self) -> bool:
        result = self._connect_result
        if result is None:
            return False
        is_failure = getattr(result, "is_failure", None)
        if is_failure is not None:
            return bool(is_failure)
        return result != 0

    def _on_connect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None
    ) -> None:
        self._connect_result = reason_code
        self._connected.set()

    def _on_disconnect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None
    ) -> None:
        logger.warning(
            "MQTT connection closed for client %s: %s",
            self.client_id,
            reason_code,
            extra={"client": self.name},
        )

    def _on_message(self, client: Any, userdata: Any, message: Any) -> None:
        with self._subscriptions_lock:
            targets = [
                buffer
                for topic_filter, buffer in self._subscriptions.items()
                if mqtt.topic_matches_sub(topic_filter, message.topic)
            ]
        for buffer in targets:
            buffer.put(message.payload)

    def _mqtt(self) -> Any:
        self.ensure_initialized()
        return self.require_resource(self.client)

    async def publish(
        self, topic: str, message: str | bytes, qos: int = 0, retain: bool = False
    ) -> None:
        """Publish a message and wait until paho has handed it to the broker."""
        client = self._mqtt()
        if not topic:
            raise ValidationError(
                "Topic is required for publish", details={"component": self.component}
            )

        timeout = self.get_typed_config(
            "publish_timeout", MQTT_OPERATION_TIMEOUT_SECONDS, (int, float)
        )
        info = client.publish(topic, message, qos=qos, retain=retain)

        try:
            await asyncio.to_thread(info.wait_for_publish, timeout)
        except (RuntimeError, ValueError) as e:
            raise ClientOperationError(
                f"Failed to publish to topic {topic}: {describe_error(e)}",
                component=self.component,
                operation="publish",
                details={"topic": topic},
                retryable=True,
                domain="messaging",
            ) from e

        if not info.is_published():
            raise ClientOperationError(
                f"Publish to topic {topic} not acknowledged within {timeout}s",
                component=self.component,
                operation="publish",
                details={"topic": topic},
                retryable=True,
                domain="messaging",
            )

    async def subscribe(self, topics: str | list[str], qos: int = 0) -> None:
        """Subscribe to one or more topic filters.

        Subscribing to an already subscribed filter keeps its buffered messages.
        """
        client = self._mqtt()
        topic_list = _as_topic_list(topics)
        if not topic_list or not all(topic_list):
            raise ValidationError(
                "Topic is required for subscribe", details={"component": self.component}
            )

        with self._subscriptions_lock:
            new_topics = [t for t in topic_list if t not in self._subscriptions]
            for topic in new_topics:
                self._subscriptions[topic] = queue.Queue()

        if not new_topics:
            return

        result, _ = client.subscribe([(topic, qos) for topic in new_topics])
        if result != mqtt.MQTT_ERR_SUCCESS:
            with self._subscriptions_lock:
                for topic in new_topics:
                    self._subscriptions.pop(topic, None)
            raise ClientOperationError(
                f"Failed to subscribe to {new_topics}: {mqtt.error_string(result)}",
                component=self.component,
                operation="subscribe",
                details={"topics": new_topics},
                domain="messaging",
            )

    async def unsubscribe(self, topics: str | list[str]) -> None:
        client = self._mqtt()
        topic_list = _as_topic_list(topics)

        with self._subscriptions_lock:
            for topic in topic_list:
                self._subscriptions.pop(topic, None)

        result, _ = client.unsubscribe(topic_list)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise ClientOperationError(
                f"Failed to unsubscribe from {topic_list}: {mqtt.error_string(result)}",
                component=self.component,
                operation="unsubscribe",
                details={"topics": topic_list},
                domain="messaging",
            )

    async def wait_for_message(
        self, topic: str, timeout: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    ) -> str | None:
        """Return the next message on ``topic``, subscribing first if needed.

        Returns
        -------
        str | None
            Decoded payload, or None when nothing arrived within ``timeout``
        """
        self._mqtt()
        if not topic:
            raise ValidationError(
                "Topic is required for wait_for_message", details={"component": self.component}
            )

        await self.subscribe(topic)

        with self._subscriptions_lock:
            buffer = self._subscriptions.get(topic)
        if buffer is None:
            return None

        try:
            payload = await asyncio.to_thread(buffer.get, True, timeout)
        except queue.Empty:
            return None

        if isinstance(payload, bytes):
            return payload.decode("utf-8", errors="replace")
        return str(payload)
