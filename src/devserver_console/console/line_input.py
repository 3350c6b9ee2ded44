import logging
from typing import Awaitable, Callable, Optional, Protocol

from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from prompt_toolkit.keys import Keys
from prompt_toolkit.shortcuts import PromptSession
from rich.markup import escape

from devserver_console.console.rendering import print_error, print_message
from devserver_console.console.suspension import (
    SuspensionArbiter,
    SuspensionError,
    SuspensionToken,
)

logger = logging.getLogger(__name__)


class LineReader(Protocol):
    """Reads one line of text in cooked, line-editing mode."""

    async def read_line(self, message: str, key_bindings: KeyBindings) -> str: ...


class PromptLineReader:
    """LineReader backed by a fresh prompt_toolkit PromptSession per line."""

    async def read_line(self, message: str, key_bindings: KeyBindings) -> str:
        session: PromptSession[str] = PromptSession(key_bindings=key_bindings)
        return await session.prompt_async(message)


class LineInputSession:
    """Nested sub-session that collects one line while owning terminal input.

    The session holds a single suspension token for its whole lifetime. Escape
    cancels it regardless of what has been typed; the escape binding exists only
    while the line is being read. Whichever way the session ends, the token is
    released and ``on_finish`` runs exactly once.
    """

    def __init__(
        self,
        arbiter: SuspensionArbiter,
        reader: LineReader,
        *,
        message: str = "> ",
        default: Optional[str] = None,
        title: Optional[str] = None,
        failure_message: str = "Could not submit input.",
        on_finish: Optional[Callable[[], None]] = None,
        owner: str = "line-input",
    ) -> None:
        self._arbiter = arbiter
        self._reader = reader
        self._message = message
        self._default = default
        self._title = title
        self._failure_message = failure_message
        self._on_finish = on_finish
        self._owner = owner
        self._token: Optional[SuspensionToken] = None

        self.line: Optional[str] = None
        self.cancelled = False
        self.interrupted = False
        self.released = False

    @property
    def prompt_message(self) -> str:
        if self._default:
            return f"[default: {self._default}]> "
        return self._message

    def cancel(self) -> None:
        self.cancelled = True

    def _key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add(Keys.Escape, eager=True)
        def _(event: KeyPressEvent) -> None:
            """Cancel the session, whatever has been typed so far."""
            self.cancel()
            event.app.exit(result="")

        return kb

    async def _collect(self) -> Optional[str]:
        if self._title:
            print_message(self._title)
        try:
            text = await self._reader.read_line(self.prompt_message, self._key_bindings())
        except (KeyboardInterrupt, EOFError):
            self.cancelled = True
            self.interrupted = True
            return None

        if self.cancelled:
            return None

        value = text.strip()
        if not value and self._default:
            value = self._default
        if not value:
            self.cancelled = True
            return None
        return value

    async def run(self, submit: Callable[[str], Awaitable[None]]) -> Optional[str]:
        """
        Collect a line and pass it to ``submit``.

        Returns:
            The submitted value, or None when the session was cancelled or
            ``submit`` failed.
        """
        if self._token is not None or self.released:
            raise SuspensionError(f"{self._owner} session has already run")

        token = self._token = self._arbiter.acquire(self._owner)
        try:
            value = await self._collect()
            if value is None:
                logger.info(f"{self._owner} session cancelled")
                return None
            self.line = value
            try:
                await submit(value)
            except SuspensionError:
                raise
            except Exception as e:
                logger.exception(f"{self._owner} submit failed")
                print_error(f"{self._failure_message} {escape(str(e))}")
                return None
            return value
        finally:
            self._finish(token)

    def _finish(self, token: SuspensionToken) -> None:
        if self.released:
            raise SuspensionError(f"{self._owner} session finished twice")
        self.released = True
        self._arbiter.release(token)
        if self._on_finish is not None:
            self._on_finish()
