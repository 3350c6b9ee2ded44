import asyncio
import logging
from typing import Callable, List, Optional, Union

from rich.markup import escape

from devserver_console.console.commands import (
    KEY_CLEAR,
    KEY_EOT,
    KEY_ESCAPE,
    KEY_INTERRUPT,
    CommandDescriptor,
    CommandTable,
    ProjectContext,
)
from devserver_console.console.rendering import print_error
from devserver_console.console.suspension import SuspensionError

logger = logging.getLogger(__name__)

_CONTROL_KEYS = {
    "\x03": KEY_INTERRUPT,
    "\x04": KEY_EOT,
    "\x0c": KEY_CLEAR,
    "\x1b": KEY_ESCAPE,
}

SHUTDOWN_KEYS = frozenset({KEY_INTERRUPT, KEY_EOT})


def translate_key(raw: Union[str, bytes]) -> Optional[str]:
    """Map raw terminal input to a logical key symbol, or None if it means nothing here."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    if raw in _CONTROL_KEYS:
        return _CONTROL_KEYS[raw]
    if len(raw) == 1 and raw.isprintable():
        return raw
    return None


class CommandDispatcher:
    """Turns keystrokes into command runs, one at a time.

    Keystrokes arriving while a command runs are dropped, not queued. Shutdown
    keys bypass that guard so the process stays killable mid-command.
    """

    def __init__(
        self,
        table: CommandTable,
        context: ProjectContext,
        on_shutdown: Callable[[], None],
        on_fatal: Callable[[BaseException], None],
    ) -> None:
        self._table = table
        self._context = context
        self._on_shutdown = on_shutdown
        self._on_fatal = on_fatal
        self._busy = False
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def busy(self) -> bool:
        return self._busy

    def on_key(self, raw: Union[str, bytes]) -> None:
        key = translate_key(raw)
        if key is None:
            logger.debug(f"Ignoring unmapped input {raw!r}")
            return

        if key in SHUTDOWN_KEYS:
            logger.info(f"Shutdown requested with {key}")
            self._on_shutdown()
            return

        if self._busy:
            if self._task is None or self._task.done():
                self._on_fatal(SuspensionError("Dispatcher is busy but no command is running"))
                return
            logger.debug(f"Dropping {key!r}; a command is still running")
            return

        commands = self._table.resolve(key, self._context.mode)
        if not commands:
            logger.debug(f"No command for {key!r} in {self._context.mode.value} mode")
            return

        self._busy = True
        self._task = asyncio.get_running_loop().create_task(self._run(key, commands))

    async def _run(self, key: str, commands: List[CommandDescriptor]) -> None:
        try:
            for command in commands:
                logger.info(f"Running '{command.label}' ({key})")
                await command.handler(self._context)
        except SuspensionError as e:
            logger.critical(f"Input ownership invariant broken: {e}")
            self._on_fatal(e)
        except (KeyboardInterrupt, EOFError):
            # Ctrl-C or Ctrl-D typed into a nested prompt
            logger.info(f"Command for {key!r} was interrupted")
            self._on_shutdown()
        except Exception as e:
            logger.exception(f"Command for {key!r} failed")
            print_error(escape(str(e)))
        finally:
            self._busy = False

    async def wait_idle(self) -> None:
        """Wait for the running command, if any, to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel the running command, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        await self.wait_idle()
