"""Shared boto3 plumbing for the AWS service clients."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from smoker.constants import DEFAULT_REGION
from smoker.core.base import BaseServiceClient
from smoker.exceptions import ClientOperationError, ValidationError, describe_error

logger = logging.getLogger(__name__)


class AwsServiceClient(BaseServiceClient):
    """Base class for clients backed by a single boto3 client.

    Recognised configuration keys:

    - ``region``: AWS region (default AWS_REGION, then AWS_DEFAULT_REGION,
      then ``us-east-1``)
    - ``access_key_id`` / ``secret_access_key``: explicit credentials; the
      default boto3 credential chain is used when absent
    - ``endpoint``: custom endpoint URL, e.g. LocalStack

    Parameters
    ----------
    name : str
        Client name identifier
    config : Mapping[str, Any] | None
        Client-specific configuration
    boto3_client_factory : Callable[..., Any] | None
        Optional factory for creating boto3 clients. If None, uses boto3.client
    """

    service_name = ""
    component = ""

    def __init__(
        self,
        name: str,
        config: Mapping[str, Any] | None = None,
        boto3_client_factory: Callable[..., Any] | None = None,
    ) -> None:
        super().__init__(name, config)
        self.boto3_client_factory = boto3_client_factory or boto3.client
        self.client: Any | None = None

    @property
    def region(self) -> str:
        default_region = os.environ.get(
            "AWS_REGION", os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)
        )
        return self.get_typed_config("region", default_region, str)

    def create_boto3_client(self) -> Any:
        """Create the boto3 client from the bound configuration."""
        kwargs: dict[str, Any] = {"region_name": self.region}

        access_key_id = self.get_typed_config("access_key_id", "", str)
        secret_access_key = self.get_typed_config("secret_access_key", "", str)
        if access_key_id and secret_access_key:
            kwargs["aws_access_key_id"] = access_key_id
            kwargs["aws_secret_access_key"] = secret_access_key

        endpoint = self.get_typed_config("endpoint", "", str)
        if endpoint:
            kwargs["endpoint_url"] = endpoint

        logger.debug(
            "Creating boto3 %s client in %s",
            self.service_name,
            kwargs["region_name"],
            extra={"client": self.name},
        )
        return self.boto3_client_factory(self.service_name, **kwargs)

    async def initialize_client(self) -> None:
        self.client = self.create_boto3_client()

    async def cleanup_client(self) -> None:
        if self.client is not None and hasattr(self.client, "close"):
            self.client.close()
        self.client = None

    def aws(self) -> Any:
        """Return the live boto3 client, raising if the client is not initialized."""
        self.ensure_initialized()
        return self.require_resource(self.client)

    def require_argument(self, value: Any, message: str) -> None:
        if value is None or value == "":
            raise ValidationError(message, details={"component": self.component})

    async def call(
        self,
        operation: str,
        failure_message: str,
        method: Callable[..., Any],
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Run a blocking boto3 call in a worker thread.

        Parameters
        ----------
        operation : str
            Operation name recorded in error details
        failure_message : str
            Message prefix used when the call fails
        method : Callable[..., Any]
            Bound boto3 client method
        details : dict[str, Any] | None
            Extra diagnostic details for the error
        **kwargs : Any
            Arguments passed to the boto3 method

        Raises
        ------
        ClientOperationError
            If boto3 raises a ClientError or BotoCoreError
        """
        try:
            return await asyncio.to_thread(method, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise ClientOperationError(
                f"{failure_message}: {describe_error(e)}",
                component=self.component,
                operation=operation,
                details={**(details or {}), "reason": describe_error(e)},
                retryable=isinstance(e, BotoCoreError),
                domain="aws",
            ) from e
