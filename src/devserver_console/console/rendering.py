import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from devserver_console.runtime_config import BuildMode, ConsoleMode

console = Console(highlight=False)

PLATFORM_TAG = "[bold blue]devserver[/bold blue]"
BULLET = " ›"


def clear_terminal() -> None:
    """Clear the terminal screen."""
    os.system("cls" if os.name == "nt" else "clear")


def print_message(message: str, style: str = "") -> None:
    styled_message = f"[{style}]{message}[/{style}]" if style else message
    console.print(styled_message)


def print_error(message: str) -> None:
    print_message(message, "bold red")


def print_warning(message: str) -> None:
    print_message(message, "yellow")


def render_help() -> str:
    return f"\n{PLATFORM_TAG} Press [bold]?[/bold] to show a list of all available commands."


def print_help() -> None:
    """Print the one-line hint shown after most commands."""
    console.print(render_help())


def render_usage(
    mode: ConsoleMode,
    open_devtools_at_startup: bool,
    build_mode: BuildMode,
    username: Optional[str],
    platform: str = sys.platform,
) -> str:
    """Build the full command list for the current state.

    Pure function: everything that can change between renders is passed in.
    """
    platform_lines = [
        "[bold]a[/bold] to run on [u]A[/u]ndroid "
        "([bold]shift+a[/bold] to select the device/emulator)"
    ]
    if platform == "darwin":
        platform_lines.append(
            "[bold]i[/bold] to run on [u]i[/u]OS simulator "
            "([bold]shift+i[/bold] to select the simulator model)"
        )
    platform_lines.append("[bold]w[/bold] to run on [u]w[/u]eb")

    lines: List[str] = [f"{BULLET} Press {text}." for text in platform_lines]
    lines.append(f"{BULLET} Press [bold]c[/bold] to show info on [u]c[/u]onnecting new devices.")
    lines.append(f"{BULLET} Press [bold]d[/bold] to open DevTools in the default web browser.")
    toggle = "disable" if open_devtools_at_startup else "enable"
    lines.append(
        f"{BULLET} Press [bold]shift-d[/bold] to {toggle} automatically opening "
        "[u]D[/u]evTools at startup."
    )
    if mode != ConsoleMode.web_only:
        lines.append(f"{BULLET} Press [bold]e[/bold] to send an app link with [u]e[/u]mail.")
    lines.append(
        f"{BULLET} Press [bold]p[/bold] to toggle [u]p[/u]roduction mode. "
        f"(current mode: [i]{build_mode.value}[/i])"
    )
    lines.append(
        f"{BULLET} Press [bold]r[/bold] to [u]r[/u]estart bundler, "
        "or [bold]shift-r[/bold] to restart and clear cache."
    )
    lines.append(f"{BULLET} Press [bold]o[/bold] to [u]o[/u]pen the project in your editor.")
    if username:
        sign = f"out. (Signed in as [i]@{escape(username)}[/i].)"
    else:
        sign = "in."
    lines.append(f"{BULLET} Press [bold]s[/bold] to [u]s[/u]ign {sign}")
    return "\n" + "\n".join(lines) + "\n"


def render_server_info(
    mode: ConsoleMode,
    url: str,
    username: Optional[str],
    platform: str = sys.platform,
) -> str:
    """Build the connection instructions shown at start-up and on ``c``."""
    if mode == ConsoleMode.web_only:
        return f"\n  Web project running at [u]{url}[/u]\n" + render_help()

    ios_info = ", or [bold]i[/bold] for iOS simulator" if platform == "darwin" else ""
    web_info = "[bold]w[/bold] to run on [u]w[/u]eb"
    items: List[str] = []
    if username:
        items.append(
            f"Sign in as [i]@{escape(username)}[/i] on your device. "
            'Your projects will automatically appear in the "Projects" tab.'
        )
    items.append(f"Open [u]{url}[/u] on your device.")
    items.append(f"Press [bold]a[/bold] for Android emulator{ios_info}, or {web_info}.")
    items.append("Press [bold]e[/bold] to send a link to your phone with email.")
    if not username:
        items.append("Press [bold]s[/bold] to sign in and enable more options.")

    lines = [f"\n  [u]{url}[/u]\n", "  [u]To run the app with live reloading, choose one of:[/u]"]
    lines.extend(f"  • {item}" for item in items)
    return "\n".join(lines) + "\n" + render_help()
