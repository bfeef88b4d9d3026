"""Lifecycle state machine shared by every service client.

The machine owns the Uninitialized/Initialized state and all transition
bookkeeping. Clients only provide two coroutine hooks: ``setup`` runs the
service-specific connect step and ``cleanup`` releases what setup acquired.

Transitions::

    UNINITIALIZED --init ok-------------> INITIALIZED
    UNINITIALIZED --init error----------> UNINITIALIZED  (error propagated as-is)
    INITIALIZED   --init----------------> INITIALIZED    (no-op)
    INITIALIZED   --destroy ok----------> UNINITIALIZED
    INITIALIZED   --destroy error-------> INITIALIZED    (DestroyError)
    INITIALIZED   --reset ok------------> INITIALIZED
    INITIALIZED   --reset destroy error-> UNINITIALIZED  (ResetError, phase="destroy")
    INITIALIZED   --reset init error----> UNINITIALIZED  (ResetError, phase="init")
    UNINITIALIZED --reset / destroy-----> UNINITIALIZED  (no-op)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from smoker.exceptions import DestroyError, ResetError

logger = logging.getLogger(__name__)

Hook = Callable[[], Awaitable[None]]


class LifecycleState(str, Enum):
    """Externally observable lifecycle states of a client."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


async def _noop() -> None:
    return None


class LifecycleStateMachine:
    """Coordinates init, reset and destroy for one client instance.

    A per-instance ``asyncio.Lock`` serialises the check-then-transition
    sequences, so overlapping coroutines cannot leave the state out of step
    with the resources the hooks actually hold.

    Parameters
    ----------
    name : str
        Name of the owning client, used in errors and log records
    setup : Callable[[], Awaitable[None]]
        Service-specific initialization hook
    cleanup : Callable[[], Awaitable[None]] | None
        Service-specific teardown hook; defaults to a no-op
    """

    def __init__(self, name: str, setup: Hook, cleanup: Hook | None = None) -> None:
        self.name = name
        self._setup = setup
        self._cleanup = cleanup or _noop
        self._state = LifecycleState.UNINITIALIZED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    def is_initialized(self) -> bool:
        return self._state is LifecycleState.INITIALIZED

    async def init(self) -> None:
        """Run setup unless already initialized.

        Raises
        ------
        Exception
            Whatever the setup hook raised, unchanged
        """
        async with self._lock:
            await self._init()

    async def destroy(self) -> None:
        """Run cleanup and return to the uninitialized state.

        Raises
        ------
        DestroyError
            If the cleanup hook fails; the state stays initialized
        """
        async with self._lock:
            await self._destroy()

    async def reset(self) -> None:
        """Destroy then re-initialize an initialized client.

        Raises
        ------
        ResetError
            If either phase fails; the client ends uninitialized
        """
        async with self._lock:
            if not self.is_initialized():
                logger.debug("Reset skipped, not initialized", extra={"client": self.name})
                return

            try:
                await self._destroy()
            except DestroyError as e:
                # resources are in an unknown state, so the client must be
                # re-initialized from scratch before further use
                self._state = LifecycleState.UNINITIALIZED
                raise ResetError(self.name, e, phase="destroy") from e

            try:
                await self._init()
            except Exception as e:
                raise ResetError(self.name, e, phase="init") from e

    async def _init(self) -> None:
        if self.is_initialized():
            logger.debug("Already initialized", extra={"client": self.name})
            return

        await self._setup()
        self._state = LifecycleState.INITIALIZED
        logger.debug("Initialized", extra={"client": self.name})

    async def _destroy(self) -> None:
        if not self.is_initialized():
            logger.debug("Destroy skipped, not initialized", extra={"client": self.name})
            return

        try:
            await self._cleanup()
        except Exception as e:
            raise DestroyError(self.name, e) from e

        self._state = LifecycleState.UNINITIALIZED
        logger.debug("Destroyed", extra={"client": self.name})
