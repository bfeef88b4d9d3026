"""Protocol definitions for service clients.

Steps and registries only depend on these protocols, never on concrete
client classes, so any object with the right shape can be registered.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ServiceClient(Protocol):
    """Lifecycle contract shared by every service client."""

    @property
    def name(self) -> str:
        """Immutable client name."""
        ...

    async def init(self, config: Mapping[str, Any] | None = None) -> None:
        """Initialize the client; a no-op when already initialized.

        Parameters
        ----------
        config : Mapping[str, Any] | None
            Configuration to bind before setup runs. Ignored when the client
            is already initialized.
        """
        ...

    async def reset(self) -> None:
        """Destroy and re-initialize the client; a no-op when uninitialized."""
        ...

    async def destroy(self) -> None:
        """Release the client's resources; a no-op when uninitialized."""
        ...

    def is_initialized(self) -> bool:
        """Return True once init() has completed successfully."""
        ...

    async def cleanup_client(self) -> None:
        """Release service-specific resources. Called by destroy()."""
        ...
