"""
Device launchers for Android (adb) and the iOS simulator (xcrun simctl).

Both launchers may ask the user to pick a device. They do so through the
interactive registry so the console's command loop is suspended while their
prompt owns the terminal.
"""

import asyncio
import logging
import re
import sys
from typing import List, Optional, Tuple

from prompt_toolkit.key_binding import KeyBindings

from devserver_console.actions.base import ActionError
from devserver_console.console.interactive import InteractiveCallbackRegistry
from devserver_console.console.line_input import LineReader, PromptLineReader
from devserver_console.console.rendering import print_error

logger = logging.getLogger(__name__)

_BOOTED_SIMULATOR = re.compile(r"^\s+(?P<name>.+?) \((?P<udid>[0-9A-Fa-f-]{36})\) \(Booted\)")


async def run_tool(*args: str) -> str:
    """Run an external tool and return its stdout, raising ActionError on failure."""
    logger.debug(f"Running {' '.join(args)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ActionError(f"'{args[0]}' was not found on your PATH")
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        message = stderr.decode(errors="replace").strip() or f"exit code {proc.returncode}"
        raise ActionError(f"{args[0]} failed: {message}")
    return stdout.decode(errors="replace")


def parse_adb_devices(output: str) -> List[str]:
    """Return serials of devices that are online in ``adb devices`` output."""
    serials: List[str] = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) >= 2 and parts[1] == "device":
            serials.append(parts[0])
    return serials


def parse_booted_simulators(output: str) -> List[Tuple[str, str]]:
    """Return (name, udid) pairs from ``xcrun simctl list devices booted`` output."""
    simulators: List[Tuple[str, str]] = []
    for line in output.splitlines():
        match = _BOOTED_SIMULATOR.match(line)
        if match:
            simulators.append((match.group("name"), match.group("udid")))
    return simulators


class DeviceLauncher:
    """Shared device-selection logic."""

    owner = "device-picker"

    def __init__(
        self,
        interactive: InteractiveCallbackRegistry,
        reader: Optional[LineReader] = None,
    ) -> None:
        self._interactive = interactive
        self._reader = reader or PromptLineReader()

    async def choose(self, label: str, choices: List[str]) -> Optional[str]:
        if not choices:
            return None
        if len(choices) == 1:
            return choices[0]
        message = f"Select {label} [{'/'.join(choices)}] ({choices[0]}): "
        async with self._interactive.suspended(self.owner):
            while True:
                answer = (await self._reader.read_line(message, KeyBindings())).strip()
                if not answer:
                    return choices[0]
                if answer in choices:
                    return answer
                print_error("Please select one of the available options")


class AndroidLauncher(DeviceLauncher):
    owner = "android-device-picker"

    async def list_devices(self) -> List[str]:
        return parse_adb_devices(await run_tool("adb", "devices"))

    async def open_url(self, url: str, prompt_for_device: bool = False) -> None:
        devices = await self.list_devices()
        if not devices:
            raise ActionError("No Android device or emulator is connected")
        serial = devices[0]
        if prompt_for_device:
            serial = await self.choose("a device", devices) or serial
        logger.info(f"Opening {url} on Android device {serial}")
        await run_tool(
            "adb", "-s", serial,
            "shell", "am", "start", "-a", "android.intent.action.VIEW", "-d", url,
        )


class IosSimulatorLauncher(DeviceLauncher):
    owner = "ios-simulator-picker"

    async def list_booted(self) -> List[Tuple[str, str]]:
        return parse_booted_simulators(
            await run_tool("xcrun", "simctl", "list", "devices", "booted")
        )

    async def open_url(self, url: str, prompt_for_device: bool = False) -> None:
        if sys.platform != "darwin":
            raise ActionError("The iOS simulator is only available on macOS")
        simulators = await self.list_booted()
        if not simulators:
            raise ActionError("No iOS simulator is booted")
        name, udid = simulators[0]
        if prompt_for_device:
            names = [sim_name for sim_name, _ in simulators]
            chosen = await self.choose("a simulator", names)
            for sim_name, sim_udid in simulators:
                if sim_name == chosen:
                    name, udid = sim_name, sim_udid
                    break
        logger.info(f"Opening {url} on iOS simulator {name}")
        await run_tool("xcrun", "simctl", "openurl", udid, url)
