"""Resolution of ``ssm://`` and ``s3://...json`` references in configuration values."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from types import TracebackType
from typing import Any

from smoker.clients.aws import S3Client, SsmClient
from smoker.exceptions import (
    ERR_CONFIG_PARSE,
    ConfigurationError,
    DestroyError,
    TeardownError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SSM_REFERENCE_PREFIX = "ssm://"
S3_REFERENCE_PREFIX = "s3://"
S3_URL_PATTERN = re.compile(r"^s3://([^/]+)/(.+)$")
MAX_RESOLUTION_DEPTH = 10


def is_ssm_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(SSM_REFERENCE_PREFIX)


def is_s3_json_reference(value: Any) -> bool:
    return (
        isinstance(value, str)
        and value.startswith(S3_REFERENCE_PREFIX)
        and value.lower().endswith(".json")
    )


def is_external_reference(value: Any) -> bool:
    return is_ssm_reference(value) or is_s3_json_reference(value)


def parse_s3_url(url: str) -> tuple[str, str] | None:
    """Split ``s3://bucket/key`` into bucket and key, or None when malformed."""
    match = S3_URL_PATTERN.match(url)
    if match is None:
        return None
    return match.group(1), match.group(2)


class ParameterResolver:
    """Replace external parameter references with the values they point to.

    ``ssm://name`` is replaced by the (decrypted) Parameter Store value and
    ``s3://bucket/key.json`` by the parsed JSON document. Resolved values are
    resolved again, so a parameter may point at another parameter or at a
    JSON document whose fields hold further references. Lists and mappings
    are resolved element by element; everything else is returned unchanged.

    The SSM and S3 clients are created on first use and released by
    :meth:`close`. SSM values are cached for the lifetime of the resolver.

    Parameters
    ----------
    region : str | None
        AWS region for the clients; the AWS client default when None
    boto3_client_factory : Callable[..., Any] | None
        Factory handed to the SSM and S3 clients, for tests
    ssm_client : SsmClient | None
        Existing SSM client to read parameters with. It is initialized on
        first use but never destroyed by the resolver
    """

    MAX_DEPTH = MAX_RESOLUTION_DEPTH

    def __init__(
        self,
        region: str | None = None,
        boto3_client_factory: Callable[..., Any] | None = None,
        ssm_client: SsmClient | None = None,
    ) -> None:
        self.region = region
        self.boto3_client_factory = boto3_client_factory
        self._ssm_client = ssm_client
        self._owns_ssm_client = ssm_client is None
        self._s3_clients: dict[str, S3Client] = {}
        self._parameter_cache: dict[str, str] = {}
        self._processing: list[str] = []
        self._depth = 0

    async def __aenter__(self) -> ParameterResolver:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _client_config(self, **values: Any) -> dict[str, Any]:
        if self.region:
            values["region"] = self.region
        return values

    async def _ssm(self) -> SsmClient:
        if self._ssm_client is None:
            self._ssm_client = SsmClient(
                "ParameterResolverSsm",
                self._client_config(),
                boto3_client_factory=self.boto3_client_factory,
            )
        await self._ssm_client.init()
        return self._ssm_client

    async def _s3(self, bucket: str) -> S3Client:
        client = self._s3_clients.get(bucket)
        if client is None:
            client = S3Client(
                f"ParameterResolverS3:{bucket}",
                self._client_config(bucket=bucket),
                boto3_client_factory=self.boto3_client_factory,
            )
            self._s3_clients[bucket] = client
        await client.init()
        return client

    @contextmanager
    def _tracking(self, reference: str) -> Iterator[None]:
        if reference in self._processing:
            chain = " -> ".join([*self._processing, reference])
            raise ConfigurationError(
                f"Circular reference detected: {chain}",
                key=reference,
                code=ERR_CONFIG_PARSE,
                details={"chain": [*self._processing, reference]},
            )

        self._processing.append(reference)
        try:
            yield
        finally:
            self._processing.pop()

    async def resolve_value(self, value: Any) -> Any:
        """Resolve every external reference in ``value``.

        Raises
        ------
        ConfigurationError
            On a circular reference, or when nesting exceeds ``MAX_DEPTH``
        ValidationError
            If an ``s3://`` reference is not of the form ``s3://bucket/key``
        ClientOperationError
            If a parameter or object cannot be read or parsed
        """
        if self._depth >= self.MAX_DEPTH:
            raise ConfigurationError(
                f"Maximum parameter resolution depth ({self.MAX_DEPTH}) exceeded. "
                "Possible circular reference detected.",
                code=ERR_CONFIG_PARSE,
                details={"max_depth": self.MAX_DEPTH},
            )

        self._depth += 1
        try:
            if isinstance(value, str):
                return await self._resolve_string(value)
            if isinstance(value, list):
                return [await self.resolve_value(item) for item in value]
            if isinstance(value, Mapping):
                return {key: await self.resolve_value(item) for key, item in value.items()}
            return value
        finally:
            self._depth -= 1

    async def resolve_config(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return await self.resolve_value(config)

    async def _resolve_string(self, value: str) -> Any:
        if is_ssm_reference(value):
            name = value[len(SSM_REFERENCE_PREFIX) :]
            if not name:
                return value

            with self._tracking(value):
                parameter = await self._read_parameter(name)
                if is_external_reference(parameter):
                    return await self.resolve_value(parameter)
                return parameter

        if is_s3_json_reference(value):
            parsed = parse_s3_url(value)
            if parsed is None:
                raise ValidationError(
                    f"Invalid S3 URL format: {value}",
                    details={"component": "parameters", "input": value},
                )

            with self._tracking(value):
                bucket, key = parsed
                client = await self._s3(bucket)
                document = await client.read_json(key)
                return await self.resolve_value(document)

        return value

    async def _read_parameter(self, name: str) -> str:
        if name in self._parameter_cache:
            return self._parameter_cache[name]

        client = await self._ssm()
        parameter = await client.read(name, with_decryption=True)
        self._parameter_cache[name] = parameter
        logger.debug("Resolved SSM parameter %s", name)
        return parameter

    async def close(self) -> None:
        """Destroy the clients this resolver created and forget cached values.

        Raises
        ------
        TeardownError
            If one or more clients failed to destroy; those clients are kept
            so a later close() can retry them
        """
        self._parameter_cache.clear()
        failures: dict[str, Exception] = {}

        for bucket, client in list(self._s3_clients.items()):
            try:
                await client.destroy()
            except DestroyError as e:
                failures[client.name] = e
            else:
                del self._s3_clients[bucket]

        if self._owns_ssm_client and self._ssm_client is not None:
            try:
                await self._ssm_client.destroy()
            except DestroyError as e:
                failures[self._ssm_client.name] = e
            else:
                self._ssm_client = None

        if failures:
            for name, error in failures.items():
                logger.warning("Failed to destroy client %s: %s", name, error)
            raise TeardownError(failures)
