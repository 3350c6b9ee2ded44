import asyncio
import logging
import os
import secrets
import shlex
import webbrowser
from pathlib import Path
from typing import Optional, Union

from prompt_toolkit.key_binding import KeyBindings

from devserver_console.actions import links
from devserver_console.actions.base import ActionError, DevicePlatform
from devserver_console.actions.devices import AndroidLauncher, IosSimulatorLauncher
from devserver_console.actions.server import DevServerProcess
from devserver_console.auth import (
    AuthSession,
    delete_session,
    get_current_username,
    get_session,
    save_session,
)
from devserver_console.console.interactive import InteractiveCallbackRegistry
from devserver_console.console.line_input import LineReader, PromptLineReader
from devserver_console.runtime_config import EDITOR_ENV, RuntimeConfig

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "code"


def resolve_editor() -> str:
    return (
        os.environ.get(EDITOR_ENV)
        or os.environ.get("VISUAL")
        or os.environ.get("EDITOR")
        or DEFAULT_EDITOR
    )


class LocalDevServerActions:
    """Actions backed by local tools: adb, xcrun, the web browser and an editor."""

    def __init__(
        self,
        config: RuntimeConfig,
        interactive: InteractiveCallbackRegistry,
        reader: Optional[LineReader] = None,
    ) -> None:
        self.config = config
        self.interactive = interactive
        self.reader = reader or PromptLineReader()
        self.android = AndroidLauncher(interactive, self.reader)
        self.ios = IosSimulatorLauncher(interactive, self.reader)
        self.server = DevServerProcess(config.server_command)

    def _launcher(self, platform: DevicePlatform) -> Union[AndroidLauncher, IosSimulatorLauncher]:
        return self.android if platform == DevicePlatform.android else self.ios

    def get_project_url(self, lan: bool = False) -> str:
        host = links.get_lan_address() if lan else self.config.host
        return links.build_url(host, self.config.port)

    def get_devtools_url(self) -> str:
        return links.build_url("localhost", self.config.devtools_port)

    async def open_device(
        self, platform: DevicePlatform, prompt_for_device: bool = False
    ) -> None:
        url = self.get_project_url(lan=True)
        await self._launcher(platform).open_url(url, prompt_for_device)

    async def open_web_on_device(
        self, platform: DevicePlatform, prompt_for_device: bool = False
    ) -> None:
        url = self.get_project_url(lan=True)
        await self._launcher(platform).open_url(url, prompt_for_device)

    async def _open_browser(self, url: str) -> None:
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            raise ActionError(f"Could not open a web browser; visit {url}")

    async def open_web(self) -> None:
        await self._open_browser(self.get_project_url())

    async def open_devtools(self) -> None:
        await self._open_browser(self.get_devtools_url())

    async def open_editor(self, project_root: Path) -> None:
        command = shlex.split(resolve_editor()) + [str(project_root)]
        # Terminal editors need the terminal, so hold input until the editor exits
        async with self.interactive.suspended("editor"):
            try:
                proc = await asyncio.create_subprocess_exec(*command)
            except FileNotFoundError:
                raise ActionError(
                    f"Editor '{command[0]}' was not found; set {EDITOR_ENV} or $EDITOR"
                )
            returncode = await proc.wait()
        if returncode != 0:
            raise ActionError(f"Editor exited with code {returncode}")

    async def start_server(self) -> None:
        await self.server.start()

    async def restart_server(self, reset_cache: bool = False) -> None:
        await self.server.restart(reset_cache=reset_cache)

    async def stop_server(self) -> None:
        await self.server.stop()

    async def send_link(self, recipient: str, url: str) -> None:
        await links.send_link(recipient, url)

    def get_session(self) -> Optional[AuthSession]:
        return get_session()

    def get_current_username(self) -> Optional[str]:
        return get_current_username()

    async def sign_out(self) -> None:
        if not delete_session():
            raise ActionError("No stored session found")

    async def request_login(self) -> Optional[str]:
        """Ask for a username and store a local session for it."""
        async with self.interactive.suspended("login"):
            username = await self.reader.read_line("Username: ", KeyBindings())
        username = username.strip()
        if not username:
            return None
        save_session(username, secrets.token_hex(16))
        logger.info(f"Signed in as {username}")
        return username
