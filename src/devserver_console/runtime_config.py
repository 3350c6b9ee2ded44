"""
Runtime configuration for the development server console.

This module provides:
- load_envs(): load DEVCONSOLE_TOKEN, DEVCONSOLE_SEND_URL and DEVCONSOLE_EDITOR from a .env file
  if they are not already present in the environment.
- RuntimeConfig: a dataclass holding runtime settings, including the project root,
  console mode and the ports the development server listens on.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

# Environment variable names for credentials and endpoints
ACCESS_TOKEN_ENV: str = "DEVCONSOLE_TOKEN"
SEND_URL_ENV: str = "DEVCONSOLE_SEND_URL"
EDITOR_ENV: str = "DEVCONSOLE_EDITOR"
LOG_LEVEL_ENV: str = "DEVCONSOLE_LOG_LEVEL"


def load_envs(env_file: Optional[str] = None) -> None:
    """
    Load DEVCONSOLE_TOKEN, DEVCONSOLE_SEND_URL and DEVCONSOLE_EDITOR from a .env file
    into the process environment if they are not already set.
    """
    env_values = dotenv_values(env_file) if env_file else dotenv_values()
    for key in (
        ACCESS_TOKEN_ENV,
        SEND_URL_ENV,
        EDITOR_ENV,
    ):
        if not os.environ.get(key):
            val = env_values.get(key)
            if val:
                os.environ[key] = str(val)


class ConsoleMode(str, Enum):
    """Which command set the console exposes. Fixed for the console's lifetime."""

    full = "full"
    web_only = "web"


class BuildMode(str, Enum):
    """Bundler build modes persisted in the project settings."""

    development = "development"
    production = "production"


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Holds runtime configuration for the console.

    Attributes:
        project_root: Path of the project served by the development server.
        mode: The console mode (full or web-only).
        host: Host name devices use to reach the development server.
        port: Port of the development server.
        devtools_port: Port the devtools UI is served on.
        non_interactive: Never prompt for a device, even for the prompt variants.
        server_command: Shell command that starts the development server, if the
            console should supervise it.
    """

    project_root: Path = field(default_factory=Path.cwd)
    mode: ConsoleMode = ConsoleMode.full
    host: str = "localhost"
    port: int = 19000
    devtools_port: int = 19002
    non_interactive: bool = False
    server_command: Optional[str] = None


def get_config_dir() -> Path:
    """
    Return the console config directory under XDG_CONFIG_HOME or fallback to ~/.config.
    """
    config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return config_home / "devserver_console"


def get_data_dir() -> Path:
    """
    Return the console data directory under XDG_DATA_HOME or fallback to ~/.local/share.
    """
    data_home = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return data_home / "devserver_console"
