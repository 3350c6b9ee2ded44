from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from devserver_console.auth import AuthSession


class ActionError(Exception):
    """An external action (device launch, network call, login) failed."""


class DevicePlatform(str, Enum):
    android = "android"
    ios = "ios"


class DevServerActions(Protocol):
    """External operations the console triggers. Their internals are not its concern."""

    def get_project_url(self, lan: bool = False) -> str: ...

    def get_devtools_url(self) -> str: ...

    async def open_device(
        self, platform: DevicePlatform, prompt_for_device: bool = False
    ) -> None: ...

    async def open_web_on_device(
        self, platform: DevicePlatform, prompt_for_device: bool = False
    ) -> None: ...

    async def open_web(self) -> None: ...

    async def open_editor(self, project_root: Path) -> None: ...

    async def open_devtools(self) -> None: ...

    async def start_server(self) -> None: ...

    async def restart_server(self, reset_cache: bool = False) -> None: ...

    async def stop_server(self) -> None: ...

    async def send_link(self, recipient: str, url: str) -> None: ...

    def get_session(self) -> Optional[AuthSession]: ...

    def get_current_username(self) -> Optional[str]: ...

    async def sign_out(self) -> None: ...

    async def request_login(self) -> Optional[str]: ...
