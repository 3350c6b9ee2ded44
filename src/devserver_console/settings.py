"""
Persisted preferences stored as KEY=VALUE lines.

User settings live in the XDG config directory; project settings live next to
the project in ``.devconsole/settings``.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from devserver_console.runtime_config import BuildMode, get_config_dir

logger = logging.getLogger(__name__)

OPEN_DEVTOOLS_AT_STARTUP = "open_devtools_at_startup"
SEND_TO = "send_to"
DEV = "dev"
MINIFY = "minify"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def get_user_settings_path() -> Path:
    """Get the path to the user settings file in the XDG config directory."""
    return get_config_dir() / "settings"


def get_project_settings_path(project_root: Path) -> Path:
    """Get the path to the settings file kept inside the project."""
    return project_root / ".devconsole" / "settings"


def read_entries(path: Path) -> Dict[str, str]:
    """Parse KEY=VALUE lines; lines without '=' are ignored."""
    if not path.exists():
        return {}
    entries: Dict[str, str] = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if "=" not in line or line.startswith("#"):
            continue
        key, value = line.split("=", 1)
        entries[key.strip()] = value.strip()
    return entries


def write_entries(path: Path, entries: Dict[str, str]) -> None:
    """Replace the file with ``entries``, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = "".join(f"{key}={value}\n" for key, value in entries.items())
    path.write_text(content)


def get_setting(path: Path, key: str) -> Optional[str]:
    """
    Retrieve a setting value.

    Returns:
        The stored value, or None when the key (or the file) is missing or empty.
    """
    value = read_entries(path).get(key)
    return value if value else None


def set_setting(path: Path, key: str, value: str) -> None:
    """Store a setting, keeping every other entry of the file."""
    entries = read_entries(path)
    entries[key] = value
    write_entries(path, entries)
    logger.debug(f"Saved {key} to {path}")


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


class UserSettings:
    """Preferences shared by every project of the current user."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or get_user_settings_path()

    def get_open_devtools_at_startup(self) -> bool:
        return _as_bool(get_setting(self.path, OPEN_DEVTOOLS_AT_STARTUP), True)

    def set_open_devtools_at_startup(self, enabled: bool) -> None:
        set_setting(self.path, OPEN_DEVTOOLS_AT_STARTUP, str(enabled).lower())

    def get_send_to(self) -> Optional[str]:
        return get_setting(self.path, SEND_TO)

    def set_send_to(self, recipient: str) -> None:
        set_setting(self.path, SEND_TO, recipient)


class ProjectSettings:
    """Per-project bundler settings."""

    def __init__(self, project_root: Path) -> None:
        self.path = get_project_settings_path(project_root)

    def get_build_mode(self) -> BuildMode:
        dev = _as_bool(get_setting(self.path, DEV), True)
        return BuildMode.development if dev else BuildMode.production

    def set_build_mode(self, mode: BuildMode) -> None:
        dev = mode == BuildMode.development
        entries = read_entries(self.path)
        entries[DEV] = str(dev).lower()
        entries[MINIFY] = str(not dev).lower()
        write_entries(self.path, entries)
