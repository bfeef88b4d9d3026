"""Kinesis data stream client."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from smoker.clients.aws.base import AwsServiceClient
from smoker.constants import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_WAIT_TIMEOUT_SECONDS
from smoker.exceptions import InitializationError, ValidationError

logger = logging.getLogger(__name__)

SHARD_ITERATOR_TYPES = (
    "AT_SEQUENCE_NUMBER",
    "AFTER_SEQUENCE_NUMBER",
    "TRIM_HORIZON",
    "LATEST",
)
"""Iterator types accepted by GetShardIterator; the first two need a sequence number."""

POLL_RECORD_LIMIT = 100


@dataclass(frozen=True)
class KinesisRecord:
    """Record read from a stream, with the payload decoded as UTF-8."""

    sequence_number: str
    partition_key: str
    data: str
    approximate_arrival_timestamp: Any = None


def format_records(records: list[dict[str, Any]]) -> list[KinesisRecord]:
    """Convert raw GetRecords entries into :class:`KinesisRecord` objects."""
    formatted = []
    for record in records:
        data = record.get("Data", b"")
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        formatted.append(
            KinesisRecord(
                sequence_number=record.get("SequenceNumber", ""),
                partition_key=record.get("PartitionKey", ""),
                data=data,
                approximate_arrival_timestamp=record.get("ApproximateArrivalTimestamp"),
            )
        )
    return formatted


class KinesisClient(AwsServiceClient):
    """Put and read records on one Kinesis stream.

    Requires ``stream_name`` in the configuration.
    """

    service_name = "kinesis"
    component = "kinesis"

    def __init__(self, name: str = "KinesisClient", *args: Any, **kwargs: Any) -> None:
        super().__init__(name, *args, **kwargs)
        self.stream_name = ""

    async def initialize_client(self) -> None:
        stream_name = self.get_typed_config("stream_name", "", str)
        if not stream_name:
            raise InitializationError(
                "Kinesis client requires a 'stream_name' to be provided in configuration",
                client_name=self.name,
            )

        self.stream_name = stream_name
        await super().initialize_client()

    async def put_record(self, data: str | bytes, partition_key: str) -> str:
        """Put one record and return its sequence number."""
        client = self.aws()
        self.require_argument(partition_key, "Kinesis put_record requires a partition key")

        payload = data.encode("utf-8") if isinstance(data, str) else data
        response = await self.call(
            "put_record",
            f"Failed to put record to stream {self.stream_name}",
            client.put_record,
            details={"stream_name": self.stream_name},
            StreamName=self.stream_name,
            Data=payload,
            PartitionKey=partition_key,
        )
        return response["SequenceNumber"]

    async def get_shard_iterator(
        self,
        shard_id: str,
        iterator_type: str = "LATEST",
        sequence_number: str | None = None,
    ) -> str:
        client = self.aws()
        self.require_argument(shard_id, "Kinesis get_shard_iterator requires a shard id")

        if iterator_type not in SHARD_ITERATOR_TYPES:
            raise ValidationError(
                f"Invalid shard iterator type: {iterator_type}",
                details={"component": self.component, "stream_name": self.stream_name},
            )

        kwargs: dict[str, Any] = {
            "StreamName": self.stream_name,
            "ShardId": shard_id,
            "ShardIteratorType": iterator_type,
        }
        if iterator_type in SHARD_ITERATOR_TYPES[:2]:
            self.require_argument(
                sequence_number, f"{iterator_type} iterators require a sequence number"
            )
            kwargs["StartingSequenceNumber"] = sequence_number

        response = await self.call(
            "get_shard_iterator",
            f"Failed to get shard iterator for {shard_id} in stream {self.stream_name}",
            client.get_shard_iterator,
            details={"stream_name": self.stream_name, "shard_id": shard_id},
            **kwargs,
        )
        return response["ShardIterator"]

    async def get_records(self, shard_iterator: str, limit: int = 10) -> list[KinesisRecord]:
        client = self.aws()
        self.require_argument(shard_iterator, "Kinesis get_records requires a shard iterator")

        response = await self.call(
            "get_records",
            f"Failed to get records from stream {self.stream_name}",
            client.get_records,
            details={"stream_name": self.stream_name},
            ShardIterator=shard_iterator,
            Limit=limit,
        )
        return format_records(response.get("Records", []))

    async def list_shards(self) -> list[str]:
        client = self.aws()

        response = await self.call(
            "list_shards",
            f"Failed to list shards for stream {self.stream_name}",
            client.list_shards,
            details={"stream_name": self.stream_name},
            StreamName=self.stream_name,
        )
        return [shard["ShardId"] for shard in response.get("Shards", [])]

    async def wait_for_records(
        self,
        partition_key: str,
        timeout: float = DEFAULT_WAIT_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        iterator_type: str = "LATEST",
    ) -> list[KinesisRecord]:
        """Poll the first shard until records with ``partition_key`` arrive.

        Returns
        -------
        list[KinesisRecord]
            Matching records, or an empty list when the timeout expires
        """
        client = self.aws()
        self.require_argument(partition_key, "Kinesis wait_for_records requires a partition key")

        deadline = time.monotonic() + timeout

        shards = await self.list_shards()
        if not shards:
            return []

        shard_iterator = await self.get_shard_iterator(shards[0], iterator_type)

        while time.monotonic() < deadline:
            response = await self.call(
                "wait_for_records",
                f"Error waiting for records in stream {self.stream_name}",
                client.get_records,
                details={"stream_name": self.stream_name},
                ShardIterator=shard_iterator,
                Limit=POLL_RECORD_LIMIT,
            )
            shard_iterator = response.get("NextShardIterator") or shard_iterator

            matching = [
                record
                for record in format_records(response.get("Records", []))
                if record.partition_key == partition_key
            ]
            if matching:
                return matching

            await asyncio.sleep(poll_interval)

        logger.debug(
            "No records for partition key %s within %.1fs",
            partition_key,
            timeout,
            extra={"client": self.name},
        )
        return []
