"""Kafka client for event streaming."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from kafka import KafkaConsumer, KafkaProducer
from kafka.errors import KafkaError, NoBrokersAvailable

from smoker.constants import (
    DEFAULT_WAIT_TIMEOUT_SECONDS,
    KAFKA_DEFAULT_CLIENT_ID,
    KAFKA_DEFAULT_GROUP_ID,
    KAFKA_POLL_TIMEOUT_MS,
)
from smoker.core.base import BaseServiceClient
from smoker.exceptions import (
    ClientOperationError,
    InitializationError,
    KafkaConnectionError,
    ValidationError,
    describe_error,
)

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class KafkaRecordMetadata:
    """Where a produced message was written."""

    topic: str
    partition: int
    offset: int
    timestamp: int = -1


@dataclass(frozen=True)
class KafkaMessage:
    """Consumed message with key and value decoded as UTF-8."""

    topic: str
    partition: int
    offset: int
    key: str | None
    value: str
    timestamp: int = -1
    headers: dict[str, bytes] = field(default_factory=dict)


def _decode(value: bytes | None) -> str | None:
    if value is None:
        return None
    return value.decode("utf-8", errors="replace")


class KafkaClient(BaseServiceClient):
    """Produce to and consume from Kafka topics via kafka-python.

    Recognised configuration keys: ``brokers`` (required list of
    ``host:port``), ``client_id``, ``group_id``, ``topics`` (subscribed on
    init when present) and ``ssl`` (use the SSL security protocol).

    Parameters
    ----------
    name : str
        Client name identifier
    config : Mapping[str, Any] | None
        Client-specific configuration
    producer_factory : Callable[..., Any] | None
        Optional factory for producers. If None, uses kafka.KafkaProducer
    consumer_factory : Callable[..., Any] | None
        Optional factory for consumers. If None, uses kafka.KafkaConsumer
    """

    component = "kafka"

    def __init__(
        self,
        name: str = "KafkaClient",
        config: Mapping[str, Any] | None = None,
        producer_factory: Callable[..., Any] | None = None,
        consumer_factory: Callable[..., Any] | None = None,
    ) -> None:
        super().__init__(name, config)
        self.producer_factory = producer_factory or KafkaProducer
        self.consumer_factory = consumer_factory or KafkaConsumer
        self.producer: Any | None = None
        self.consumer: Any | None = None
        self.brokers: list[str] = []
        self.client_id = KAFKA_DEFAULT_CLIENT_ID
        self.group_id = KAFKA_DEFAULT_GROUP_ID

    def _connection_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "bootstrap_servers": self.brokers,
            "client_id": self.client_id,
        }
        if self.get_typed_config("ssl", False, bool):
            kwargs["security_protocol"] = "SSL"
        return kwargs

    async def initialize_client(self) -> None:
        brokers = self.get_typed_config("brokers", [], (list, tuple))
        if not brokers:
            raise InitializationError(
                "Kafka client requires at least one broker in 'brokers'", client_name=self.name
            )

        self.brokers = [str(broker) for broker in brokers]
        self.client_id = self.get_typed_config("client_id", KAFKA_DEFAULT_CLIENT_ID, str)
        self.group_id = self.get_typed_config("group_id", KAFKA_DEFAULT_GROUP_ID, str)
        topics = list(self.get_typed_config("topics", [], (list, tuple)))
        connection_kwargs = self._connection_kwargs()

        try:
            self.producer = await asyncio.to_thread(self.producer_factory, **connection_kwargs)
        except (NoBrokersAvailable, KafkaError) as e:
            raise KafkaConnectionError(
                f"Kafka connection failed: {describe_error(e)}", self.brokers
            ) from e

        try:
            if topics:
                await self._subscribe(topics, self.group_id)
        except Exception:
            try:
                await self.cleanup_client()
            except Exception as cleanup_error:
                logger.warning(
                    "Cleanup after failed initialization raised: %s",
                    describe_error(cleanup_error),
                    extra={"client": self.name},
                )
            raise

    async def cleanup_client(self) -> None:
        try:
            if self.producer is not None:
                await asyncio.to_thread(self.producer.close)
                self.producer = None
        finally:
            if self.consumer is not None:
                await asyncio.to_thread(self.consumer.close)
                self.consumer = None

    def _producer(self) -> Any:
        self.ensure_initialized()
        return self.require_resource(self.producer)

    async def send_message(
        self, topic: str, message: str, key: str | None = None
    ) -> KafkaRecordMetadata:
        """Send a message and wait for the broker acknowledgement."""
        producer = self._producer()
        if not topic:
            raise ValidationError(
                "Kafka send_message requires a topic", details={"component": self.component}
            )

        def send() -> Any:
            future = producer.send(
                topic,
                value=message.encode("utf-8"),
                key=key.encode("utf-8") if key is not None else None,
            )
            return future.get(timeout=SEND_TIMEOUT_SECONDS)

        try:
            metadata = await asyncio.to_thread(send)
        except KafkaError as e:
            raise ClientOperationError(
                f"Failed to send message to topic {topic}: {describe_error(e)}",
                component=self.component,
                operation="send_message",
                details={"topic": topic, "brokers": self.brokers},
                retryable=getattr(e, "retriable", False),
                domain="messaging",
            ) from e

        return KafkaRecordMetadata(
            topic=metadata.topic,
            partition=metadata.partition,
            offset=metadata.offset,
            timestamp=getattr(metadata, "timestamp", -1),
        )

    async def subscribe(self, topics: str | list[str], group_id: str | None = None) -> None:
        """Create a consumer subscribed to ``topics``, replacing any earlier one."""
        self._producer()
        await self._subscribe([topics] if isinstance(topics, str) else list(topics), group_id)

    async def _subscribe(self, topic_list: list[str], group_id: str | None) -> None:
        if not topic_list or not all(topic_list):
            raise ValidationError(
                "Kafka subscribe requires at least one topic",
                details={"component": self.component},
            )

        if self.consumer is not None:
            await asyncio.to_thread(self.consumer.close)
            self.consumer = None

        try:
            consumer = await asyncio.to_thread(
                self.consumer_factory,
                group_id=group_id or self.group_id,
                auto_offset_reset="earliest",
                **self._connection_kwargs(),
            )
        except KafkaError as e:
            raise KafkaConnectionError(
                f"Failed to subscribe to {topic_list}: {describe_error(e)}", self.brokers
            ) from e

        try:
            consumer.subscribe(topic_list)
        except KafkaError as e:
            await asyncio.to_thread(consumer.close)
            raise KafkaConnectionError(
                f"Failed to subscribe to {topic_list}: {describe_error(e)}", self.brokers
            ) from e

        self.consumer = consumer
        logger.debug("Subscribed to %s", topic_list, extra={"client": self.name})

    async def wait_for_message(
        self, timeout: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    ) -> KafkaMessage | None:
        """Return the next message on the subscribed topics, or None on timeout."""
        self.ensure_initialized()
        consumer = self.consumer
        if consumer is None:
            raise ValidationError(
                "Kafka wait_for_message requires an active subscription",
                details={"component": self.component},
            )

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            remaining_ms = int((deadline - time.monotonic()) * 1000)
            batch = await asyncio.to_thread(
                consumer.poll,
                timeout_ms=max(1, min(KAFKA_POLL_TIMEOUT_MS, remaining_ms)),
                max_records=1,
            )
            for records in batch.values():
                for record in records:
                    if record.value is None:
                        continue
                    return KafkaMessage(
                        topic=record.topic,
                        partition=record.partition,
                        offset=record.offset,
                        key=_decode(record.key),
                        value=_decode(record.value) or "",
                        timestamp=getattr(record, "timestamp", -1),
                        headers=dict(getattr(record, "headers", None) or []),
                    )
        return None
