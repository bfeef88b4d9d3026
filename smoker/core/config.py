from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from smoker.constants import (
    CLIENT_ID_SEPARATOR,
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_FILE,
    ClientType,
)

if TYPE_CHECKING:
    from smoker.world.parameters import ParameterResolver

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Load smoker YAML configuration and turn it into client configurations.

    A configuration file has an optional ``vars`` section for interpolation,
    an optional ``defaults`` section applied under every client, and a
    ``clients`` section keyed by ``type`` or ``type:id``::

        vars:
          region: eu-west-1
        defaults:
          region: ${region}
        clients:
          s3:
            bucket: smoke-bucket
          "s3:backup":
            bucket: backup-bucket
    """

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks SMOKER_CONFIG env var,
            then falls back to smoker.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with all variable interpolations resolved

        Raises
        ------
        ValueError
            If the file is not valid YAML
        RuntimeError
            If the file cannot be read
        omegaconf.errors.InterpolationResolutionError
            If undefined variables are referenced or circular references exist
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)

        config_file = Path(config_path)

        if not config_file.exists():
            logger.debug("Config file %s not found, using empty configuration", config_file)
            return {"clients": {}}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {"clients": {}}

        if "vars" in cfg:
            vars_dict = OmegaConf.to_container(cfg.vars, resolve=False)
            for key, value in vars_dict.items():
                if key not in cfg:
                    cfg[key] = value

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ValueError(f"Configuration variable resolution error: {e}") from e

        config.setdefault("clients", {})
        return config

    def get_client_configs(self, config: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Return client configurations with the defaults section merged in.

        Parameters
        ----------
        config : dict[str, Any]
            Full configuration from :meth:`load_config`

        Returns
        -------
        dict[str, dict[str, Any]]
            Mapping of ``type`` / ``type:id`` keys to merged client settings
        """
        self.validate_config(config)

        defaults = config.get("defaults") or {}
        merged: dict[str, dict[str, Any]] = {}

        for key, client_config in (config.get("clients") or {}).items():
            values = copy.deepcopy(defaults)
            values.update(client_config or {})
            merged[key] = values

        return merged

    async def resolve_client_configs(
        self, config: dict[str, Any], resolver: ParameterResolver
    ) -> dict[str, dict[str, Any]]:
        """Return :meth:`get_client_configs` with external references resolved.

        ``ssm://name`` values are replaced by Parameter Store values and
        ``s3://bucket/key.json`` values by the parsed documents.

        Raises
        ------
        ConfigurationError
            On circular references or when resolution nests too deeply
        ClientOperationError
            If a referenced parameter or object cannot be read
        """
        return await resolver.resolve_config(self.get_client_configs(config))

    def validate_config(self, config: dict[str, Any]) -> None:
        """Validate the structure of a loaded configuration.

        Raises
        ------
        ValueError
            If a section has the wrong shape or a client key names an
            unknown client type
        """
        defaults = config.get("defaults")
        if defaults is not None and not isinstance(defaults, dict):
            raise ValueError("defaults must be a mapping")

        clients = config.get("clients")
        if clients is None:
            return

        if not isinstance(clients, dict):
            raise ValueError("clients must be a mapping")

        for key, client_config in clients.items():
            client_type, _, client_id = str(key).partition(CLIENT_ID_SEPARATOR)

            if not ClientType.is_valid(client_type):
                available = [t.value for t in ClientType]
                raise ValueError(
                    f"Unknown client type '{client_type}' in clients.{key}. "
                    f"Available types: {available}"
                )

            if CLIENT_ID_SEPARATOR in str(key) and not client_id:
                raise ValueError(f"Client key '{key}' has an empty id")

            if client_config is not None and not isinstance(client_config, dict):
                raise ValueError(f"clients.{key} must be a mapping")
