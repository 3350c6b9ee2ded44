import contextlib
import itertools
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Set

from devserver_console.console.input_channel import RawInputChannel

logger = logging.getLogger(__name__)


class SuspensionError(RuntimeError):
    """Raised when the suspension hold count would no longer match the input state."""


@dataclass(frozen=True, eq=False)
class SuspensionToken:
    """Opaque handle for one outstanding suspension. Release it exactly once."""

    id: int
    owner: str = ""


class SuspensionArbiter:
    """Reference-counted gate deciding whether the raw input channel is active.

    The channel is active exactly when no token is outstanding. Tokens may be
    held by several parties at once; the channel resumes when the last one is
    released.
    """

    def __init__(self, channel: RawInputChannel) -> None:
        self._channel = channel
        self._held: Set[SuspensionToken] = set()
        self._ids = itertools.count(1)
        self._stopped = False

    @property
    def hold_count(self) -> int:
        return len(self._held)

    @property
    def suspended(self) -> bool:
        return bool(self._held)

    def acquire(self, owner: str = "") -> SuspensionToken:
        """Take exclusive ownership of terminal input away from the command loop."""
        token = SuspensionToken(next(self._ids), owner)
        self._held.add(token)
        logger.debug(f"Suspension acquired by {owner or 'anonymous'} (holds: {self.hold_count})")
        if len(self._held) == 1:
            self._channel.deactivate()
        return token

    def release(self, token: SuspensionToken) -> None:
        """Give input back; the channel reactivates when the last holder releases."""
        if token not in self._held:
            raise SuspensionError(
                f"Suspension token {token.id} ({token.owner or 'anonymous'}) "
                "is not held; it was already released or never acquired"
            )
        self._held.remove(token)
        logger.debug(
            f"Suspension released by {token.owner or 'anonymous'} (holds: {self.hold_count})"
        )
        if not self._held and not self._stopped:
            self._channel.activate()

    def start(self) -> None:
        """Activate the channel for the first time. Nothing may hold a token yet."""
        if self._held:
            raise SuspensionError("Cannot start input while a suspension is held")
        self._stopped = False
        self._channel.activate()

    def stop(self) -> None:
        """Deactivate the channel for good, e.g. on shutdown."""
        self._stopped = True
        if self._channel.active:
            self._channel.deactivate()

    @contextlib.asynccontextmanager
    async def suspended_input(self, owner: str = "") -> AsyncIterator[SuspensionToken]:
        """Hold a suspension for the duration of the block."""
        token = self.acquire(owner)
        try:
            yield token
        finally:
            self.release(token)
