import asyncio
from unittest.mock import AsyncMock

import pytest

from smoker.core.lifecycle import LifecycleState, LifecycleStateMachine
from smoker.exceptions import DestroyError, FailureKind, ResetError


def make_machine(setup=None, cleanup=None) -> LifecycleStateMachine:
    return LifecycleStateMachine(
        "TestClient",
        setup=setup or AsyncMock(),
        cleanup=cleanup or AsyncMock(),
    )


class TestInit:
    @pytest.mark.asyncio
    async def test_starts_uninitialized(self) -> None:
        machine = make_machine()

        assert machine.state is LifecycleState.UNINITIALIZED
        assert machine.is_initialized() is False

    @pytest.mark.asyncio
    async def test_init_runs_setup_once(self) -> None:
        setup = AsyncMock()
        machine = make_machine(setup=setup)

        await machine.init()
        await machine.init()

        assert machine.is_initialized()
        setup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_setup_error_propagates_unchanged(self) -> None:
        error = RuntimeError("boom")
        machine = make_machine(setup=AsyncMock(side_effect=error))

        with pytest.raises(RuntimeError) as exc_info:
            await machine.init()

        assert exc_info.value is error
        assert not machine.is_initialized()

    @pytest.mark.asyncio
    async def test_init_retry_after_failure(self) -> None:
        setup = AsyncMock(side_effect=[RuntimeError("boom"), None])
        machine = make_machine(setup=setup)

        with pytest.raises(RuntimeError):
            await machine.init()
        await machine.init()

        assert machine.is_initialized()
        assert setup.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_init_runs_setup_once(self) -> None:
        calls = 0

        async def slow_setup() -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)

        machine = make_machine(setup=slow_setup)

        await asyncio.gather(machine.init(), machine.init(), machine.init())

        assert calls == 1
        assert machine.is_initialized()


class TestDestroy:
    @pytest.mark.asyncio
    async def test_destroy_uninitialized_is_noop(self) -> None:
        cleanup = AsyncMock()
        machine = make_machine(cleanup=cleanup)

        await machine.destroy()

        cleanup.assert_not_awaited()
        assert machine.state is LifecycleState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_destroy_runs_cleanup(self) -> None:
        cleanup = AsyncMock()
        machine = make_machine(cleanup=cleanup)

        await machine.init()
        await machine.destroy()
        await machine.destroy()

        cleanup.assert_awaited_once()
        assert not machine.is_initialized()

    @pytest.mark.asyncio
    async def test_cleanup_failure_wraps_and_keeps_state(self) -> None:
        cause = RuntimeError("Cleanup failed")
        machine = make_machine(cleanup=AsyncMock(side_effect=cause))
        await machine.init()

        with pytest.raises(DestroyError) as exc_info:
            await machine.destroy()

        assert str(exc_info.value) == "Failed to destroy client: Cleanup failed"
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.kind is FailureKind.DESTROY
        assert machine.is_initialized()

    @pytest.mark.asyncio
    async def test_destroy_can_be_retried(self) -> None:
        cleanup = AsyncMock(side_effect=[RuntimeError("Cleanup failed"), None])
        machine = make_machine(cleanup=cleanup)
        await machine.init()

        with pytest.raises(DestroyError):
            await machine.destroy()
        await machine.destroy()

        assert not machine.is_initialized()

    @pytest.mark.asyncio
    async def test_default_cleanup_is_noop(self) -> None:
        machine = LifecycleStateMachine("TestClient", setup=AsyncMock())

        await machine.init()
        await machine.destroy()

        assert not machine.is_initialized()


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_uninitialized_is_noop(self) -> None:
        setup = AsyncMock()
        cleanup = AsyncMock()
        machine = make_machine(setup=setup, cleanup=cleanup)

        await machine.reset()

        setup.assert_not_awaited()
        cleanup.assert_not_awaited()
        assert not machine.is_initialized()

    @pytest.mark.asyncio
    async def test_reset_runs_cleanup_then_setup(self) -> None:
        order: list[str] = []

        async def setup() -> None:
            order.append("setup")

        async def cleanup() -> None:
            order.append("cleanup")

        machine = make_machine(setup=setup, cleanup=cleanup)
        await machine.init()

        await machine.reset()

        assert order == ["setup", "cleanup", "setup"]
        assert machine.is_initialized()

    @pytest.mark.asyncio
    async def test_reset_destroy_failure_forces_uninitialized(self) -> None:
        setup = AsyncMock()
        machine = make_machine(setup=setup, cleanup=AsyncMock(side_effect=RuntimeError("gone")))
        await machine.init()

        with pytest.raises(ResetError) as exc_info:
            await machine.reset()

        assert exc_info.value.phase == "destroy"
        assert str(exc_info.value) == "Failed to reset client: Failed to destroy client: gone"
        assert isinstance(exc_info.value.__cause__, DestroyError)
        assert machine.state is LifecycleState.UNINITIALIZED
        setup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reset_init_failure(self) -> None:
        setup = AsyncMock(side_effect=[None, RuntimeError("no broker")])
        machine = make_machine(setup=setup)
        await machine.init()

        with pytest.raises(ResetError) as exc_info:
            await machine.reset()

        assert exc_info.value.phase == "init"
        assert str(exc_info.value) == "Failed to reset client: no broker"
        assert exc_info.value.kind is FailureKind.RESET
        assert not machine.is_initialized()

    @pytest.mark.asyncio
    async def test_init_after_failed_reset_recovers(self) -> None:
        setup = AsyncMock(side_effect=[None, RuntimeError("no broker"), None])
        machine = make_machine(setup=setup)
        await machine.init()

        with pytest.raises(ResetError):
            await machine.reset()
        await machine.init()

        assert machine.is_initialized()
