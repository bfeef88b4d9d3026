"""Registry of client configurations keyed by client type and optional id."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from smoker.constants import CLIENT_ID_SEPARATOR, ClientType
from smoker.core.client_config import ClientConfig

logger = logging.getLogger(__name__)


def config_key(client_type: ClientType | str, client_id: str | None = None) -> str:
    """Return the registry key for a client: ``type`` or ``type:id``."""
    if isinstance(client_type, ClientType):
        type_value = client_type.value
    else:
        type_value = str(client_type).strip().lower()
    if client_id:
        return f"{type_value}{CLIENT_ID_SEPARATOR}{client_id}"
    return type_value


class ClientConfigRegistry:
    """Store configurations for clients before they are created.

    A configuration registered for a bare type acts as the default for every
    id of that type that has no configuration of its own.
    """

    def __init__(self) -> None:
        self._configs: dict[str, ClientConfig] = {}

    def register_config(
        self,
        client_type: ClientType | str,
        config: Mapping[str, Any],
        client_id: str | None = None,
    ) -> None:
        key = config_key(client_type, client_id)
        self._configs[key] = ClientConfig(config)
        logger.debug("Registered configuration for %s", key)

    def register_configs(self, configs: Mapping[str, Any]) -> None:
        """Register several configurations at once.

        Parameters
        ----------
        configs : Mapping[str, Any]
            Mapping of ``type`` or ``type:id`` keys to configuration mappings.
            Entries whose value is not a mapping are skipped.
        """
        for key, config in configs.items():
            if not isinstance(config, Mapping):
                logger.debug("Skipping non-mapping configuration for %s", key)
                continue

            client_type, _, client_id = str(key).partition(CLIENT_ID_SEPARATOR)
            self.register_config(client_type, config, client_id or None)

    def get_config(
        self, client_type: ClientType | str, client_id: str | None = None
    ) -> ClientConfig | None:
        """Return the configuration for a client.

        The exact ``type:id`` entry wins; otherwise the bare type entry is
        returned. None when neither exists.
        """
        config = self._configs.get(config_key(client_type, client_id))
        if config is None and client_id:
            config = self._configs.get(config_key(client_type))
        return config

    def has_config(self, client_type: ClientType | str, client_id: str | None = None) -> bool:
        return self.get_config(client_type, client_id) is not None

    def all_configs(self) -> dict[str, ClientConfig]:
        return dict(self._configs)

    def clear(self) -> None:
        self._configs.clear()

    def __len__(self) -> int:
        return len(self._configs)
