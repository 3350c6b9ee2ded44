import pytest
from conftest import FakeChannel

from devserver_console.console.interactive import InteractiveCallbackRegistry
from devserver_console.console.suspension import SuspensionArbiter, SuspensionError


@pytest.mark.asyncio
async def test_suspended_block_owns_terminal(
    registry: InteractiveCallbackRegistry, channel: FakeChannel
) -> None:
    async with registry.suspended("android"):
        assert not channel.active
    assert channel.active


@pytest.mark.asyncio
async def test_independent_collaborators_nest(
    registry: InteractiveCallbackRegistry, arbiter: SuspensionArbiter, channel: FakeChannel
) -> None:
    async with registry.suspended("android") as android:
        async with registry.suspended("simulator"):
            assert arbiter.hold_count == 2
        assert not channel.active
        assert android.owner == "android"
    assert channel.active


@pytest.mark.asyncio
async def test_releasing_a_block_token_early_is_fatal(
    registry: InteractiveCallbackRegistry, arbiter: SuspensionArbiter, channel: FakeChannel
) -> None:
    with pytest.raises(SuspensionError):
        async with registry.suspended("android") as token:
            arbiter.release(token)
    assert channel.active


@pytest.mark.asyncio
async def test_run_interactive_returns_result_and_resumes(
    registry: InteractiveCallbackRegistry, arbiter: SuspensionArbiter, channel: FakeChannel
) -> None:
    async def login() -> str:
        assert not channel.active
        return "alice"

    assert await registry.run_interactive("login", login) == "alice"
    assert arbiter.hold_count == 0
    assert channel.active


@pytest.mark.asyncio
async def test_run_interactive_resumes_on_failure(
    registry: InteractiveCallbackRegistry, channel: FakeChannel
) -> None:
    async def login() -> str:
        raise RuntimeError("auth failed")

    with pytest.raises(RuntimeError):
        await registry.run_interactive("login", login)
    assert channel.active


@pytest.mark.asyncio
async def test_reentrant_login_inside_suspension(
    registry: InteractiveCallbackRegistry, arbiter: SuspensionArbiter, channel: FakeChannel
) -> None:
    async def login() -> int:
        return arbiter.hold_count

    async with registry.suspended("email"):
        assert await registry.run_interactive("login", login) == 2
        assert not channel.active
    assert channel.active
