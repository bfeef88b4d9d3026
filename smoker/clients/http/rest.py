"""REST client for HTTP API interactions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urljoin, urlparse

import requests

from smoker.constants import DEFAULT_REST_TIMEOUT_SECONDS
from smoker.core.base import BaseServiceClient
from smoker.exceptions import (
    ClientOperationError,
    ConfigurationError,
    InitializationError,
    describe_error,
)

logger = logging.getLogger(__name__)


def is_valid_url(url: str) -> bool:
    """Return True for absolute http(s) URLs."""
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class RestClient(BaseServiceClient):
    """Send HTTP requests through a shared requests session.

    Recognised configuration keys:

    - ``base_url``: prefix for relative request paths
    - ``timeout``: per-request timeout in seconds (default 30)
    - ``headers``: headers sent with every request

    Parameters
    ----------
    name : str
        Client name identifier
    config : Mapping[str, Any] | None
        Client-specific configuration
    session_factory : Callable[[], requests.Session] | None
        Optional factory for creating sessions. If None, uses requests.Session
    """

    component = "rest"

    def __init__(
        self,
        name: str = "RestClient",
        config: Mapping[str, Any] | None = None,
        session_factory: Callable[[], requests.Session] | None = None,
    ) -> None:
        super().__init__(name, config)
        self.session_factory = session_factory or requests.Session
        self.session: requests.Session | None = None
        self.base_url = ""
        self.timeout = DEFAULT_REST_TIMEOUT_SECONDS

    async def initialize_client(self) -> None:
        try:
            base_url = self.get_typed_config("base_url", "", str)
            timeout = self.get_typed_config("timeout", DEFAULT_REST_TIMEOUT_SECONDS, (int, float))
            headers = self.get_typed_config("headers", {}, dict)
        except ConfigurationError as e:
            raise InitializationError(
                f"Failed to initialize REST client: {describe_error(e)}", client_name=self.name
            ) from e

        if base_url and not is_valid_url(base_url):
            raise InitializationError(
                f"Failed to initialize REST client: Invalid base_url: {base_url}",
                client_name=self.name,
            )

        session = self.session_factory()
        session.headers.update({str(k): str(v) for k, v in headers.items()})

        self.base_url = base_url
        self.timeout = timeout
        self.session = session

    async def cleanup_client(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def build_url(self, url: str) -> str:
        """Resolve ``url`` against the configured base URL."""
        if is_valid_url(url) or not self.base_url:
            return url
        return urljoin(self.base_url.rstrip("/") + "/", url.lstrip("/"))

    async def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send a request and return the response, whatever its status code.

        Raises
        ------
        NotInitializedError
            If the client is not initialized
        ClientOperationError
            If the request could not be sent or no response arrived
        """
        self.ensure_initialized()
        session = self.require_resource(self.session)

        full_url = self.build_url(url)
        kwargs.setdefault("timeout", self.timeout)

        logger.debug("%s %s", method, full_url, extra={"client": self.name})
        try:
            return await asyncio.to_thread(session.request, method, full_url, **kwargs)
        except requests.RequestException as e:
            raise ClientOperationError(
                f"{method} request to {full_url} failed: {describe_error(e)}",
                component=self.component,
                operation=method.lower(),
                details={"url": full_url, "reason": describe_error(e)},
                retryable=isinstance(e, (requests.ConnectionError, requests.Timeout)),
                domain="http",
            ) from e

    async def get(self, url: str, **kwargs: Any) -> requests.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, data: Any = None, **kwargs: Any) -> requests.Response:
        return await self.request("POST", url, **self._body(data, kwargs))

    async def put(self, url: str, data: Any = None, **kwargs: Any) -> requests.Response:
        return await self.request("PUT", url, **self._body(data, kwargs))

    async def patch(self, url: str, data: Any = None, **kwargs: Any) -> requests.Response:
        return await self.request("PATCH", url, **self._body(data, kwargs))

    async def delete(self, url: str, **kwargs: Any) -> requests.Response:
        return await self.request("DELETE", url, **kwargs)

    @staticmethod
    def _body(data: Any, kwargs: dict[str, Any]) -> dict[str, Any]:
        # dicts and lists go out as JSON, anything else as a raw body
        if data is None:
            return kwargs
        if isinstance(data, (dict, list)):
            return {**kwargs, "json": data}
        return {**kwargs, "data": data}
