"""SQS queue client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from smoker.clients.aws.base import AwsServiceClient
from smoker.exceptions import InitializationError, ValidationError

logger = logging.getLogger(__name__)

MAX_RECEIVE_MESSAGES = 10
MAX_DELAY_SECONDS = 900
MAX_WAIT_TIME_SECONDS = 20


@dataclass(frozen=True)
class SqsMessage:
    """Message received from a queue."""

    id: str
    body: str
    receipt_handle: str
    attributes: dict[str, str] = field(default_factory=dict)


class SqsClient(AwsServiceClient):
    """Send, receive and delete messages on one SQS queue.

    Requires ``queue_url`` in the configuration.
    """

    service_name = "sqs"
    component = "sqs"

    def __init__(self, name: str = "SqsClient", *args: Any, **kwargs: Any) -> None:
        super().__init__(name, *args, **kwargs)
        self.queue_url = ""

    async def initialize_client(self) -> None:
        queue_url = self.get_typed_config("queue_url", "", str)
        if not queue_url:
            raise InitializationError(
                "SQS client requires a 'queue_url' to be provided in configuration",
                client_name=self.name,
            )

        self.queue_url = queue_url
        await super().initialize_client()

    async def send_message(self, message_body: str, delay_seconds: int = 0) -> str:
        """Send a message and return its message id.

        Raises
        ------
        ValidationError
            If the body is empty or delay_seconds is outside 0..900
        """
        client = self.aws()
        self.require_argument(message_body, "SQS send_message requires a message body")

        if not 0 <= delay_seconds <= MAX_DELAY_SECONDS:
            raise ValidationError(
                f"delay_seconds must be between 0 and {MAX_DELAY_SECONDS}",
                details={"component": self.component, "delay_seconds": delay_seconds},
            )

        response = await self.call(
            "send_message",
            f"Failed to send message to queue {self.queue_url}",
            client.send_message,
            details={"queue_url": self.queue_url},
            QueueUrl=self.queue_url,
            MessageBody=message_body,
            DelaySeconds=delay_seconds,
        )
        return response["MessageId"]

    async def receive_messages(
        self, max_messages: int = 1, wait_time_seconds: int = 0
    ) -> list[SqsMessage]:
        """Receive up to ``max_messages`` messages (1..10)."""
        client = self.aws()

        if not 1 <= max_messages <= MAX_RECEIVE_MESSAGES:
            raise ValidationError(
                f"max_messages must be between 1 and {MAX_RECEIVE_MESSAGES}",
                details={"component": self.component, "max_messages": max_messages},
            )

        if not 0 <= wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
            raise ValidationError(
                f"wait_time_seconds must be between 0 and {MAX_WAIT_TIME_SECONDS}",
                details={"component": self.component, "wait_time_seconds": wait_time_seconds},
            )

        response = await self.call(
            "receive_messages",
            f"Failed to receive messages from queue {self.queue_url}",
            client.receive_message,
            details={"queue_url": self.queue_url},
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=wait_time_seconds,
            AttributeNames=["All"],
        )

        return [
            SqsMessage(
                id=message.get("MessageId", ""),
                body=message.get("Body", ""),
                receipt_handle=message.get("ReceiptHandle", ""),
                attributes=message.get("Attributes", {}),
            )
            for message in response.get("Messages", [])
        ]

    async def delete_message(self, receipt_handle: str) -> None:
        client = self.aws()
        self.require_argument(receipt_handle, "SQS delete_message requires a receipt handle")

        await self.call(
            "delete_message",
            f"Failed to delete message from queue {self.queue_url}",
            client.delete_message,
            details={"queue_url": self.queue_url},
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
        )

    async def purge_queue(self) -> None:
        client = self.aws()

        await self.call(
            "purge_queue",
            f"Failed to purge queue {self.queue_url}",
            client.purge_queue,
            details={"queue_url": self.queue_url},
            QueueUrl=self.queue_url,
        )
        logger.debug("Purged queue %s", self.queue_url, extra={"client": self.name})
