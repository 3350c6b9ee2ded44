"""
Capability handed to external collaborators that need the terminal for their own
prompts (device pickers, login flows).

Collaborators never flip raw mode themselves; every pause is an ordinary
acquire/release pair on the SuspensionArbiter, so nested pauses compose.
"""

import contextlib
import logging
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from devserver_console.console.suspension import SuspensionArbiter, SuspensionToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InteractiveCallbackRegistry:
    """Hands out suspension capabilities to collaborators."""

    def __init__(self, arbiter: SuspensionArbiter) -> None:
        self._arbiter = arbiter

    @property
    def arbiter(self) -> SuspensionArbiter:
        return self._arbiter

    @contextlib.asynccontextmanager
    async def suspended(self, owner: str) -> AsyncIterator[SuspensionToken]:
        """Own the terminal for the duration of the block."""
        async with self._arbiter.suspended_input(owner) as token:
            yield token

    async def run_interactive(self, owner: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` while the command loop is suspended."""
        async with self.suspended(owner):
            return await fn()
