"""CLI entry point for smoker."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import Any

import fire

from smoker.constants import CLIENT_ID_SEPARATOR, DEBUG_ENV_VAR, ClientType
from smoker.core.config import ConfigLoader
from smoker.exceptions import SmokerError, describe_error
from smoker.logging import ClientFormatter
from smoker.registry import ClientConfigRegistry, ClientFactory, ClientRegistry
from smoker.world import ParameterResolver

logger = logging.getLogger(__name__)

for _noisy_module in ["botocore", "boto3", "urllib3", "kafka"]:
    logging.getLogger(_noisy_module).setLevel(logging.WARNING)


class SmokerCLI:
    """Inspect and check the clients of a smoker configuration.

    Parameters
    ----------
    config_loader : ConfigLoader | None
        Loader for the YAML configuration. A default loader when None
    """

    def __init__(self, config_loader: ConfigLoader | None = None) -> None:
        self._config_loader = config_loader or ConfigLoader()

    def types(self) -> list[str]:
        """List the client types that can appear in a configuration."""
        return [client_type.value for client_type in ClientType.all_types()]

    def show(self, config: str | None = None, resolve: bool = False) -> str:
        """Print the client configurations as JSON.

        Parameters
        ----------
        config : str | None
            Path to the YAML configuration; SMOKER_CONFIG or smoker.yaml when None
        resolve : bool
            Replace ssm:// and s3://...json references with the values they
            point to. Resolved secrets are printed in clear text
        """
        loaded = self._config_loader.load_config(config)
        if resolve:
            client_configs = asyncio.run(self._resolve_client_configs(loaded))
        else:
            client_configs = self._config_loader.get_client_configs(loaded)
        return json.dumps(client_configs, indent=2, sort_keys=True, default=str)

    def check(self, config: str | None = None) -> dict[str, str]:
        """Initialize and destroy every configured client once.

        Parameters
        ----------
        config : str | None
            Path to the YAML configuration; SMOKER_CONFIG or smoker.yaml when None

        Returns
        -------
        dict[str, str]
            "ok" or the failure message per client key. The process exits
            with status 1 when any client failed
        """
        loaded = self._config_loader.load_config(config)
        client_configs = self._config_loader.get_client_configs(loaded)

        if not client_configs:
            logger.info("No clients configured")
            return {}

        results = asyncio.run(self._check_clients(loaded))

        if any(result != "ok" for result in results.values()):
            for key, result in results.items():
                print(f"{key}: {result}", file=sys.stderr)
            sys.exit(1)

        return results

    async def _resolve_client_configs(self, loaded: dict[str, Any]) -> dict[str, dict[str, Any]]:
        async with ParameterResolver() as resolver:
            return await self._config_loader.resolve_client_configs(loaded, resolver)

    async def _check_clients(self, loaded: dict[str, Any]) -> dict[str, str]:
        client_configs = await self._resolve_client_configs(loaded)
        config_registry = ClientConfigRegistry()
        config_registry.register_configs(client_configs)
        registry = ClientRegistry(ClientFactory(config_registry))

        results: dict[str, str] = {}
        for key in config_registry.all_configs():
            client_type, _, client_id = key.partition(CLIENT_ID_SEPARATOR)
            try:
                client = await registry.get_initialized_client(client_type, client_id or None)
                await client.destroy()
            except (SmokerError, ValueError) as e:
                logger.warning("Client %s failed: %s", key, describe_error(e))
                results[key] = describe_error(e)
            else:
                logger.info("Client %s ok", key)
                results[key] = "ok"

        try:
            await registry.destroy_all()
        except SmokerError as e:
            logger.warning("Teardown after check failed: %s", describe_error(e))

        return results


def handle_error(error: Exception, debug_mode: bool) -> None:
    """Print an error for the user and exit.

    Parameters
    ----------
    error : Exception
        Error that stopped the command
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    Exception
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Error: {describe_error(error)}", file=sys.stderr)
    sys.exit(1)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ClientFormatter("%(levelname)s %(message)s"))

    logging.basicConfig(level=logging.INFO, handlers=[handler])

    debug_mode = os.environ.get(DEBUG_ENV_VAR) == "1"

    try:
        fire.Fire(SmokerCLI())
    except (SmokerError, ValueError, RuntimeError) as e:
        handle_error(e, debug_mode)
