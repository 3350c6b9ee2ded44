"""
Key → action table and the handlers it points at.

The table is built once at start-up and never mutated. Lookup is two-tiered:
at most one mode-specific command per key, then any global commands for the
same key.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from rich.markup import escape

from devserver_console.actions.base import ActionError, DevicePlatform, DevServerActions
from devserver_console.console.interactive import InteractiveCallbackRegistry
from devserver_console.console.line_input import LineInputSession, LineReader
from devserver_console.console.rendering import (
    clear_terminal,
    console,
    print_error,
    print_help,
    print_message,
    print_warning,
    render_server_info,
    render_usage,
)
from devserver_console.console.suspension import SuspensionArbiter
from devserver_console.runtime_config import BuildMode, ConsoleMode, RuntimeConfig
from devserver_console.settings import ProjectSettings, UserSettings

logger = logging.getLogger(__name__)

KEY_INTERRUPT = "ctrl-c"
KEY_EOT = "ctrl-d"
KEY_CLEAR = "ctrl-l"
KEY_ESCAPE = "escape"


@dataclass
class ProjectContext:
    """Everything a command handler may touch."""

    config: RuntimeConfig
    actions: DevServerActions
    interactive: InteractiveCallbackRegistry
    line_reader: LineReader
    user_settings: UserSettings
    project_settings: ProjectSettings
    request_shutdown: Callable[[], None]

    @property
    def arbiter(self) -> SuspensionArbiter:
        return self.interactive.arbiter

    @property
    def mode(self) -> ConsoleMode:
        return self.config.mode


Handler = Callable[[ProjectContext], Awaitable[None]]


def _any_mode(mode: ConsoleMode) -> bool:
    return True


def _full_only(mode: ConsoleMode) -> bool:
    return mode == ConsoleMode.full


def _web_only(mode: ConsoleMode) -> bool:
    return mode == ConsoleMode.web_only


@dataclass(frozen=True)
class CommandDescriptor:
    """Definition of a key command: key symbol, label, handler and availability."""

    key: str
    label: str
    handler: Handler
    available: Callable[[ConsoleMode], bool] = field(default=_any_mode)


class CommandTable:
    """Immutable mapping from key symbols to mode-specific and global commands."""

    def __init__(
        self,
        mode_commands: Sequence[CommandDescriptor],
        global_commands: Sequence[CommandDescriptor],
    ) -> None:
        self._mode_commands = self._index(mode_commands)
        self._global_commands = self._index(global_commands)

    @staticmethod
    def _index(
        commands: Sequence[CommandDescriptor],
    ) -> Mapping[str, Tuple[CommandDescriptor, ...]]:
        index: Dict[str, List[CommandDescriptor]] = {}
        for command in commands:
            index.setdefault(command.key, []).append(command)
        return MappingProxyType({key: tuple(cmds) for key, cmds in index.items()})

    def lookup(self, key: str, mode: ConsoleMode) -> Optional[CommandDescriptor]:
        """Return the single mode-specific command for ``key``, if any."""
        for command in self._mode_commands.get(key, ()):
            if command.available(mode):
                return command
        return None

    def resolve(self, key: str, mode: ConsoleMode) -> List[CommandDescriptor]:
        """Return the mode-specific command (if any) followed by matching global ones."""
        commands: List[CommandDescriptor] = []
        mode_command = self.lookup(key, mode)
        if mode_command is not None:
            commands.append(mode_command)
        commands.extend(
            command
            for command in self._global_commands.get(key, ())
            if command.available(mode)
        )
        return commands


def print_usage(ctx: ProjectContext) -> None:
    console.print(
        render_usage(
            ctx.mode,
            ctx.user_settings.get_open_devtools_at_startup(),
            ctx.project_settings.get_build_mode(),
            ctx.actions.get_current_username(),
        )
    )


def print_server_info(ctx: ProjectContext) -> None:
    url = ctx.actions.get_project_url()
    console.print(render_server_info(ctx.mode, url, ctx.actions.get_current_username()))


async def open_android(ctx: ProjectContext) -> None:
    clear_terminal()
    print_message("Trying to open the project on Android...")
    await ctx.actions.open_device(DevicePlatform.android)
    print_help()


async def open_android_with_prompt(ctx: ProjectContext) -> None:
    clear_terminal()
    print_message("Trying to open the project on Android...")
    await ctx.actions.open_device(DevicePlatform.android, prompt_for_device=True)
    print_help()


async def open_ios(ctx: ProjectContext) -> None:
    clear_terminal()
    print_message("Opening in iOS simulator...")
    await ctx.actions.open_device(DevicePlatform.ios)
    print_help()


async def open_ios_with_prompt(ctx: ProjectContext) -> None:
    clear_terminal()
    await ctx.actions.open_device(DevicePlatform.ios, prompt_for_device=True)
    print_help()


def _web_on_device(platform: DevicePlatform, message: str, prompt: bool) -> Handler:
    async def handler(ctx: ProjectContext) -> None:
        clear_terminal()
        print_message(message)
        await ctx.actions.open_web_on_device(
            platform, prompt_for_device=prompt and not ctx.config.non_interactive
        )
        print_help()

    return handler


async def send_link_by_email(ctx: ProjectContext) -> None:
    url = ctx.actions.get_project_url(lan=True)
    session = LineInputSession(
        ctx.arbiter,
        ctx.line_reader,
        default=ctx.user_settings.get_send_to(),
        title="Please enter your email address (press ESC to cancel) ",
        failure_message="Could not send link.",
        on_finish=print_help,
        owner="email",
    )

    async def submit(recipient: str) -> None:
        print_message(f"Sending {url} to {escape(recipient)}...")
        await ctx.actions.send_link(recipient, url)
        print_message("Sent link successfully.")
        ctx.user_settings.set_send_to(recipient)

    clear_terminal()
    await session.run(submit)
    if session.interrupted:
        ctx.request_shutdown()


async def email_unsupported(ctx: ProjectContext) -> None:
    print_error(" › Sending a URL is not supported in web-only mode")


async def clear_screen(ctx: ProjectContext) -> None:
    clear_terminal()


async def show_usage(ctx: ProjectContext) -> None:
    print_usage(ctx)


async def open_web(ctx: ProjectContext) -> None:
    clear_terminal()
    print_message("Attempting to open the project in a web browser...")
    await ctx.actions.open_web()
    print_server_info(ctx)


async def show_server_info(ctx: ProjectContext) -> None:
    clear_terminal()
    print_server_info(ctx)


async def open_devtools(ctx: ProjectContext) -> None:
    print_message("Opening DevTools in the browser...")
    await ctx.actions.open_devtools()
    print_help()


async def toggle_devtools_at_startup(ctx: ProjectContext) -> None:
    clear_terminal()
    enabled = not ctx.user_settings.get_open_devtools_at_startup()
    ctx.user_settings.set_open_devtools_at_startup(enabled)
    state = "enabled" if enabled else "disabled"
    print_message(
        f"Automatically opening DevTools [bold]{state}[/bold].\n"
        "Press [bold]d[/bold] to open DevTools now."
    )
    print_help()


async def toggle_build_mode(ctx: ProjectContext) -> None:
    clear_terminal()
    current = ctx.project_settings.get_build_mode()
    new_mode = (
        BuildMode.production if current == BuildMode.development else BuildMode.development
    )
    ctx.project_settings.set_build_mode(new_mode)
    print_message(
        f"Bundler is now running in [bold]{new_mode.value}[/bold] mode.\n"
        "Please reload the project on your device for the change to take effect."
    )
    print_help()


def _restart(reset_cache: bool) -> Handler:
    async def handler(ctx: ProjectContext) -> None:
        clear_terminal()
        if reset_cache:
            print_message("Restarting bundler and clearing cache...")
        else:
            print_message("Restarting bundler...")
        await ctx.actions.restart_server(reset_cache=reset_cache)

    return handler


async def toggle_sign_in(ctx: ProjectContext) -> None:
    session = ctx.actions.get_session()
    if session and session.access_token:
        print_warning("Please remove the DEVCONSOLE_TOKEN environment var to sign out.")
    elif session and session.session_secret:
        try:
            await ctx.actions.sign_out()
            print_message("Signed out.")
        except ActionError as e:
            logger.warning(f"Sign out failed: {e}")
            print_error(f"Could not sign out. {escape(str(e))}")
    else:
        try:
            username = await ctx.interactive.run_interactive(
                "sign-in", ctx.actions.request_login
            )
        except ActionError as e:
            logger.warning(f"Sign in failed: {e}")
            print_error(f"Could not sign in. {escape(str(e))}")
        else:
            if username:
                print_message(f"Signed in as [i]@{escape(username)}[/i].")
    print_help()


async def open_editor(ctx: ProjectContext) -> None:
    print_message("Trying to open the project in your editor...")
    await ctx.actions.open_editor(ctx.config.project_root)


def build_command_table() -> CommandTable:
    """Build the console's command table for both modes."""
    mode_commands = [
        CommandDescriptor("a", "open on Android", open_android, _full_only),
        CommandDescriptor(
            "A", "open on Android (select device)", open_android_with_prompt, _full_only
        ),
        CommandDescriptor("i", "open on iOS simulator", open_ios, _full_only),
        CommandDescriptor(
            "I", "open on iOS simulator (select simulator)", open_ios_with_prompt, _full_only
        ),
        CommandDescriptor("e", "send link with email", send_link_by_email, _full_only),
        CommandDescriptor(
            "a",
            "open web project on Android",
            _web_on_device(
                DevicePlatform.android,
                "Trying to open the web project in Chrome on Android...",
                prompt=False,
            ),
            _web_only,
        ),
        CommandDescriptor(
            "A",
            "open web project on Android (select device)",
            _web_on_device(
                DevicePlatform.android,
                "Trying to open the web project in Chrome on Android...",
                prompt=True,
            ),
            _web_only,
        ),
        CommandDescriptor(
            "i",
            "open web project on iOS simulator",
            _web_on_device(
                DevicePlatform.ios,
                "Trying to open the web project in Safari on the iOS simulator...",
                prompt=False,
            ),
            _web_only,
        ),
        CommandDescriptor(
            "I",
            "open web project on iOS simulator (select simulator)",
            _web_on_device(
                DevicePlatform.ios,
                "Trying to open the web project in Safari on the iOS simulator...",
                prompt=True,
            ),
            _web_only,
        ),
        CommandDescriptor("e", "send link with email", email_unsupported, _web_only),
    ]
    global_commands = [
        CommandDescriptor(KEY_CLEAR, "clear screen", clear_screen),
        CommandDescriptor("?", "show commands", show_usage),
        CommandDescriptor("w", "open web", open_web),
        CommandDescriptor("c", "show connection info", show_server_info),
        CommandDescriptor("d", "open DevTools", open_devtools),
        CommandDescriptor("D", "toggle DevTools at startup", toggle_devtools_at_startup),
        CommandDescriptor("p", "toggle production mode", toggle_build_mode),
        CommandDescriptor("r", "restart bundler", _restart(reset_cache=False)),
        CommandDescriptor("R", "restart bundler and clear cache", _restart(reset_cache=True)),
        CommandDescriptor("s", "sign in or out", toggle_sign_in),
        CommandDescriptor("o", "open in editor", open_editor),
    ]
    return CommandTable(mode_commands, global_commands)
