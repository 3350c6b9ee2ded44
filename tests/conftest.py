from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Union

import pytest
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from rich.console import Console

import devserver_console.console.commands as commands_module
import devserver_console.console.rendering as rendering
from devserver_console.actions.base import ActionError, DevicePlatform
from devserver_console.auth import AuthSession
from devserver_console.console.commands import ProjectContext
from devserver_console.console.input_channel import RawInputChannel
from devserver_console.console.interactive import InteractiveCallbackRegistry
from devserver_console.console.suspension import SuspensionArbiter
from devserver_console.runtime_config import ConsoleMode, RuntimeConfig
from devserver_console.settings import ProjectSettings, UserSettings

ESCAPE = object()


class FakeChannel(RawInputChannel):
    """Raw input channel that records transitions instead of touching a tty."""

    def __init__(self) -> None:
        super().__init__()
        self._active = False
        self.transitions: List[str] = []

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> None:
        if not self._active:
            self._active = True
            self.transitions.append("activate")

    def deactivate(self) -> None:
        if self._active:
            self._active = False
            self.transitions.append("deactivate")

    def press(self, data: str) -> None:
        """Deliver a keystroke, but only while raw mode is on."""
        if self._active:
            self.emit(data)


class DummyApp:
    def __init__(self) -> None:
        self.exited = False
        self.result: Optional[str] = None

    def exit(self, result: Optional[str] = None) -> None:
        self.exited = True
        self.result = result


class DummyEvent:
    def __init__(self) -> None:
        self.app = DummyApp()


def find_escape_binding(bindings: KeyBindings) -> Any:
    for b in bindings.bindings:
        if tuple(b.keys) == (Keys.Escape,):
            return b
    raise AssertionError("escape binding not installed")


Response = Union[str, object, BaseException, Callable[[], str]]


class FakeLineReader:
    """Scripted LineReader. ESCAPE presses the session's escape binding."""

    def __init__(self, *responses: Response, arbiter: Optional[SuspensionArbiter] = None) -> None:
        self.responses = list(responses)
        self.arbiter = arbiter
        self.messages: List[str] = []
        self.hold_counts: List[int] = []
        self.bindings: List[KeyBindings] = []

    async def read_line(self, message: str, key_bindings: KeyBindings) -> str:
        self.messages.append(message)
        self.bindings.append(key_bindings)
        if self.arbiter is not None:
            self.hold_counts.append(self.arbiter.hold_count)
        response = self.responses.pop(0)
        if response is ESCAPE:
            event = DummyEvent()
            find_escape_binding(key_bindings).handler(event)
            return event.app.result or ""
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response()
        assert isinstance(response, str)
        return response


class FakeActions:
    """DevServerActions double that records every call."""

    def __init__(self, config: RuntimeConfig, interactive: InteractiveCallbackRegistry) -> None:
        self.config = config
        self.interactive = interactive
        self.calls: List[Tuple[Any, ...]] = []
        self.session: Optional[AuthSession] = None
        self.login_username: Optional[str] = "alice"
        self.login_holds: List[int] = []
        self.fail_send: Optional[Exception] = None
        self.fail_open: Optional[Exception] = None
        self.fail_login: Optional[Exception] = None
        self.fail_sign_out: Optional[Exception] = None

    def get_project_url(self, lan: bool = False) -> str:
        return "http://192.168.1.5:19000" if lan else "http://localhost:19000"

    def get_devtools_url(self) -> str:
        return "http://localhost:19002"

    async def open_device(self, platform: DevicePlatform, prompt_for_device: bool = False) -> None:
        self.calls.append(("open_device", platform, prompt_for_device))
        if self.fail_open:
            raise self.fail_open

    async def open_web_on_device(
        self, platform: DevicePlatform, prompt_for_device: bool = False
    ) -> None:
        self.calls.append(("open_web_on_device", platform, prompt_for_device))

    async def open_web(self) -> None:
        self.calls.append(("open_web",))

    async def open_editor(self, project_root: Path) -> None:
        self.calls.append(("open_editor", project_root))

    async def open_devtools(self) -> None:
        self.calls.append(("open_devtools",))

    async def start_server(self) -> None:
        self.calls.append(("start_server",))

    async def restart_server(self, reset_cache: bool = False) -> None:
        self.calls.append(("restart_server", reset_cache))

    async def stop_server(self) -> None:
        self.calls.append(("stop_server",))

    async def send_link(self, recipient: str, url: str) -> None:
        self.calls.append(("send_link", recipient, url))
        if self.fail_send:
            raise self.fail_send

    def get_session(self) -> Optional[AuthSession]:
        return self.session

    def get_current_username(self) -> Optional[str]:
        return self.session.username if self.session else None

    async def sign_out(self) -> None:
        self.calls.append(("sign_out",))
        if self.fail_sign_out:
            raise self.fail_sign_out
        self.session = None

    async def request_login(self) -> Optional[str]:
        if self.fail_login:
            raise self.fail_login
        # Real login flows suspend input themselves as well
        async with self.interactive.suspended("login"):
            self.login_holds.append(self.interactive.arbiter.hold_count)
            self.calls.append(("request_login",))
        if self.login_username:
            self.session = AuthSession(username=self.login_username, session_secret="s3cret")
        return self.login_username


@pytest.fixture(autouse=True)
def recorder(monkeypatch: pytest.MonkeyPatch) -> Console:
    """Redirect console output to a recorder and disable screen clearing."""
    recorder = Console(record=True, width=120)
    monkeypatch.setattr(rendering, "console", recorder)
    monkeypatch.setattr(commands_module, "console", recorder)
    monkeypatch.setattr(rendering, "clear_terminal", lambda: None)
    monkeypatch.setattr(commands_module, "clear_terminal", lambda: None)
    return recorder


@pytest.fixture(autouse=True)
def isolated_dirs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("DEVCONSOLE_TOKEN", raising=False)
    monkeypatch.delenv("DEVCONSOLE_SEND_URL", raising=False)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def arbiter(channel: FakeChannel) -> SuspensionArbiter:
    arbiter = SuspensionArbiter(channel)
    arbiter.start()
    return arbiter


@pytest.fixture
def registry(arbiter: SuspensionArbiter) -> InteractiveCallbackRegistry:
    return InteractiveCallbackRegistry(arbiter)


def make_context(
    arbiter: SuspensionArbiter,
    tmp_path: Path,
    mode: ConsoleMode = ConsoleMode.full,
    line_reader: Optional[FakeLineReader] = None,
    non_interactive: bool = False,
) -> Tuple[ProjectContext, FakeActions, List[str]]:
    config = RuntimeConfig(project_root=tmp_path, mode=mode, non_interactive=non_interactive)
    interactive = InteractiveCallbackRegistry(arbiter)
    actions = FakeActions(config, interactive)
    shutdowns: List[str] = []
    ctx = ProjectContext(
        config=config,
        actions=actions,
        interactive=interactive,
        line_reader=line_reader or FakeLineReader(arbiter=arbiter),
        user_settings=UserSettings(tmp_path / "user_settings"),
        project_settings=ProjectSettings(tmp_path),
        request_shutdown=lambda: shutdowns.append("shutdown"),
    )
    return ctx, actions, shutdowns
