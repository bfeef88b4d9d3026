"""S3 object storage client."""

from __future__ import annotations

import json
import logging
from typing import Any

from smoker.clients.aws.base import AwsServiceClient
from smoker.exceptions import ClientOperationError, InitializationError

logger = logging.getLogger(__name__)


class S3Client(AwsServiceClient):
    """Read, write and delete objects in one S3 bucket.

    Requires ``bucket`` in the configuration in addition to the common AWS
    keys understood by :class:`AwsServiceClient`.
    """

    service_name = "s3"
    component = "s3"

    def __init__(self, name: str = "S3Client", *args: Any, **kwargs: Any) -> None:
        super().__init__(name, *args, **kwargs)
        self.bucket = ""

    async def initialize_client(self) -> None:
        bucket = self.get_typed_config("bucket", "", str)
        if not bucket:
            raise InitializationError(
                "S3 client requires a 'bucket' name to be provided in configuration",
                client_name=self.name,
            )

        self.bucket = bucket
        await super().initialize_client()

    async def read(self, key: str) -> str:
        """Read an object as UTF-8 text.

        Parameters
        ----------
        key : str
            Object key within the bucket

        Returns
        -------
        str
            Object content

        Raises
        ------
        ValidationError
            If key is empty
        ClientOperationError
            If the object cannot be read
        """
        client = self.aws()
        self.require_argument(key, "S3 read operation requires a key")

        response = await self.call(
            "read",
            f"Failed to read object {key} from bucket {self.bucket}",
            client.get_object,
            details={"bucket": self.bucket, "key": key},
            Bucket=self.bucket,
            Key=key,
        )

        body = response.get("Body")
        if body is None:
            raise ClientOperationError(
                f"Object {key} in bucket {self.bucket} has no content",
                component=self.component,
                operation="read",
                details={"bucket": self.bucket, "key": key},
            )

        try:
            return body.read().decode("utf-8")
        finally:
            body.close()

    async def read_json(self, key: str) -> Any:
        """Read an object and parse it as JSON."""
        content = await self.read(key)
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ClientOperationError(
                f"Failed to parse JSON from object {key} in bucket {self.bucket}: {e}",
                component=self.component,
                operation="read_json",
                details={"bucket": self.bucket, "key": key},
            ) from e

    async def write(self, key: str, content: str) -> None:
        """Write a text object."""
        client = self.aws()
        self.require_argument(key, "S3 write operation requires a key")

        await self.call(
            "write",
            f"Failed to write object {key} to bucket {self.bucket}",
            client.put_object,
            details={"bucket": self.bucket, "key": key},
            Bucket=self.bucket,
            Key=key,
            Body=content.encode("utf-8"),
            ContentType="text/plain",
        )
        logger.debug("Wrote s3://%s/%s", self.bucket, key, extra={"client": self.name})

    async def write_json(self, key: str, data: Any) -> None:
        """Serialise ``data`` as JSON and write it."""
        client = self.aws()
        self.require_argument(key, "S3 write operation requires a key")

        try:
            body = json.dumps(data)
        except (TypeError, ValueError) as e:
            raise ClientOperationError(
                f"Failed to serialise JSON for object {key}: {e}",
                component=self.component,
                operation="write_json",
                details={"bucket": self.bucket, "key": key},
            ) from e

        await self.call(
            "write_json",
            f"Failed to write object {key} to bucket {self.bucket}",
            client.put_object,
            details={"bucket": self.bucket, "key": key},
            Bucket=self.bucket,
            Key=key,
            Body=body.encode("utf-8"),
            ContentType="application/json",
        )

    async def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key succeeds, as in S3 itself."""
        client = self.aws()
        self.require_argument(key, "S3 delete operation requires a key")

        await self.call(
            "delete",
            f"Failed to delete object {key} from bucket {self.bucket}",
            client.delete_object,
            details={"bucket": self.bucket, "key": key},
            Bucket=self.bucket,
            Key=key,
        )
