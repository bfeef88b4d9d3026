"""CloudWatch Logs client."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from smoker.clients.aws.base import AwsServiceClient
from smoker.constants import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_WAIT_TIMEOUT_SECONDS
from smoker.exceptions import InitializationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEvent:
    """Log event from a CloudWatch log stream. ``timestamp`` is epoch milliseconds."""

    timestamp: int
    message: str
    log_stream_name: str


def _epoch_ms(seconds: float) -> int:
    return int(seconds * 1000)


class CloudWatchClient(AwsServiceClient):
    """Search and read events in one CloudWatch Logs log group.

    Requires ``log_group_name`` in the configuration.
    """

    service_name = "logs"
    component = "cloudwatch"

    def __init__(self, name: str = "CloudWatchClient", *args: Any, **kwargs: Any) -> None:
        super().__init__(name, *args, **kwargs)
        self.log_group_name = ""

    async def initialize_client(self) -> None:
        log_group_name = self.get_typed_config("log_group_name", "", str)
        if not log_group_name:
            raise InitializationError(
                "CloudWatch client requires a 'log_group_name' to be provided in configuration",
                client_name=self.name,
            )

        self.log_group_name = log_group_name
        await super().initialize_client()

    async def search_log_stream(
        self,
        log_stream_name: str,
        pattern: str,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> list[LogEvent]:
        """Return events in a stream that match a CloudWatch filter pattern.

        Parameters
        ----------
        log_stream_name : str
            Log stream to search
        pattern : str
            CloudWatch Logs filter pattern
        start_time, end_time : int | None
            Optional bounds in epoch milliseconds
        """
        client = self.aws()
        self.require_argument(log_stream_name, "CloudWatch search requires a log stream name")
        self.require_argument(pattern, "CloudWatch search requires a filter pattern")

        kwargs: dict[str, Any] = {
            "logGroupName": self.log_group_name,
            "logStreamNames": [log_stream_name],
            "filterPattern": pattern,
        }
        if start_time is not None:
            kwargs["startTime"] = start_time
        if end_time is not None:
            kwargs["endTime"] = end_time

        response = await self.call(
            "search_log_stream",
            "Failed to search CloudWatch logs",
            client.filter_log_events,
            details={"log_group_name": self.log_group_name, "log_stream_name": log_stream_name},
            **kwargs,
        )

        return [
            LogEvent(
                timestamp=event.get("timestamp", 0),
                message=event.get("message", ""),
                log_stream_name=event.get("logStreamName", log_stream_name),
            )
            for event in response.get("events", [])
        ]

    async def get_log_events(
        self,
        log_stream_name: str,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int = 100,
    ) -> list[LogEvent]:
        client = self.aws()
        self.require_argument(
            log_stream_name, "CloudWatch get_log_events requires a log stream name"
        )

        kwargs: dict[str, Any] = {
            "logGroupName": self.log_group_name,
            "logStreamName": log_stream_name,
            "limit": limit,
            "startFromHead": True,
        }
        if start_time is not None:
            kwargs["startTime"] = start_time
        if end_time is not None:
            kwargs["endTime"] = end_time

        response = await self.call(
            "get_log_events",
            "Failed to get CloudWatch log events",
            client.get_log_events,
            details={"log_group_name": self.log_group_name, "log_stream_name": log_stream_name},
            **kwargs,
        )

        return [
            LogEvent(
                timestamp=event.get("timestamp", 0),
                message=event.get("message", ""),
                log_stream_name=log_stream_name,
            )
            for event in response.get("events", [])
        ]

    async def list_log_streams(self) -> list[str]:
        """Return the names of the streams in the configured log group."""
        client = self.aws()

        response = await self.call(
            "list_log_streams",
            "Failed to list CloudWatch log streams",
            client.describe_log_streams,
            details={"log_group_name": self.log_group_name},
            logGroupName=self.log_group_name,
        )
        return [
            stream["logStreamName"]
            for stream in response.get("logStreams", [])
            if stream.get("logStreamName")
        ]

    async def wait_for_pattern(
        self,
        log_stream_name: str,
        pattern: str,
        timeout: float = DEFAULT_WAIT_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> bool:
        """Poll a stream until ``pattern`` matches an event logged since the call.

        Returns
        -------
        bool
            True if the pattern was found before ``timeout`` seconds elapsed
        """
        self.ensure_initialized()

        start_ms = _epoch_ms(time.time())
        deadline = time.monotonic() + timeout

        while time.monotonic() < deadline:
            events = await self.search_log_stream(
                log_stream_name, pattern, start_ms, _epoch_ms(time.time())
            )
            if events:
                return True
            await asyncio.sleep(poll_interval)

        logger.debug(
            "Pattern %r not found in %s within %.1fs",
            pattern,
            log_stream_name,
            timeout,
            extra={"client": self.name},
        )
        return False
