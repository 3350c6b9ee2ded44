import asyncio
import logging
import signal
from typing import Callable, Optional, Protocol

from devserver_console.actions.base import ActionError, DevServerActions
from devserver_console.console.commands import (
    CommandTable,
    ProjectContext,
    build_command_table,
    print_server_info,
)
from devserver_console.console.dispatcher import CommandDispatcher
from devserver_console.console.input_channel import RawInputChannel, TerminalInputChannel
from devserver_console.console.interactive import InteractiveCallbackRegistry
from devserver_console.console.line_input import LineReader, PromptLineReader
from devserver_console.console.rendering import print_error
from devserver_console.console.suspension import SuspensionArbiter
from devserver_console.runtime_config import RuntimeConfig
from devserver_console.settings import ProjectSettings, UserSettings

__all__ = ["ConsoleInterface", "TerminalConsole", "ActionsFactory"]

logger = logging.getLogger(__name__)

ActionsFactory = Callable[[RuntimeConfig, InteractiveCallbackRegistry], DevServerActions]


def interrupt_host_process() -> None:
    """Ask the host process to shut down the same way Ctrl+C would."""
    signal.raise_signal(signal.SIGINT)


class ConsoleInterface(Protocol):
    """Common interface for console interactions."""

    config: RuntimeConfig

    async def run(self) -> None:
        pass


class TerminalConsole(ConsoleInterface):
    """Keypress console that runs alongside the development server."""

    def __init__(
        self,
        config: RuntimeConfig,
        actions_factory: ActionsFactory,
        channel: Optional[RawInputChannel] = None,
        line_reader: Optional[LineReader] = None,
        user_settings: Optional[UserSettings] = None,
        table: Optional[CommandTable] = None,
        shutdown_hook: Callable[[], None] = interrupt_host_process,
    ) -> None:
        self.config = config
        self.channel = channel or TerminalInputChannel()
        self.arbiter = SuspensionArbiter(self.channel)
        self.interactive = InteractiveCallbackRegistry(self.arbiter)
        self.actions = actions_factory(config, self.interactive)
        self.context = ProjectContext(
            config=config,
            actions=self.actions,
            interactive=self.interactive,
            line_reader=line_reader or PromptLineReader(),
            user_settings=user_settings or UserSettings(),
            project_settings=ProjectSettings(config.project_root),
            request_shutdown=self.request_shutdown,
        )
        self.dispatcher = CommandDispatcher(
            table or build_command_table(),
            self.context,
            on_shutdown=self.request_shutdown,
            on_fatal=self._fail,
        )
        self.channel.set_key_callback(self.dispatcher.on_key)
        self._shutdown_hook = shutdown_hook
        self._shutdown_requested = False
        self._done: Optional[asyncio.Future[None]] = None

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def request_shutdown(self) -> None:
        """Signal the host to terminate; the console does not exit on its own."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True
        self._shutdown_hook()

    def _fail(self, error: BaseException) -> None:
        if self._done is not None and not self._done.done():
            self._done.set_exception(error)
        else:
            raise error

    async def _open_devtools_at_startup(self) -> None:
        if not self.context.user_settings.get_open_devtools_at_startup():
            return
        try:
            await self.actions.open_devtools()
        except ActionError as e:
            logger.warning(f"Could not open DevTools at startup: {e}")
            print_error(f"Could not open DevTools: {e}")

    async def run(self) -> None:
        """Run until the host stops the console or an invariant breaks."""
        self._done = asyncio.get_running_loop().create_future()
        logger.info(
            f"Starting {self.config.mode.value} console for {self.config.project_root}"
        )
        try:
            await self.actions.start_server()
            print_server_info(self.context)
            await self._open_devtools_at_startup()
            self.arbiter.start()
            await self._done
        finally:
            self.arbiter.stop()
            await self.dispatcher.aclose()
            await self.actions.stop_server()
            logger.info("Console stopped")
