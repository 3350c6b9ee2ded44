import os
from enum import Enum
from pathlib import Path

import pytest

from devserver_console.runtime_config import (
    BuildMode,
    ConsoleMode,
    RuntimeConfig,
    get_config_dir,
    get_data_dir,
    load_envs,
)


@pytest.mark.parametrize(
    "enum_class,expected_values",
    [
        (ConsoleMode, {"full", "web"}),
        (BuildMode, {"development", "production"}),
    ],
)
def test_enum_values(enum_class: type[Enum], expected_values: set[str]) -> None:
    """Test that enum classes have the expected values."""
    choices = {c.value for c in enum_class}
    assert choices == expected_values


def test_runtime_config_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    config = RuntimeConfig()
    assert config.project_root == tmp_path
    assert config.mode == ConsoleMode.full
    assert config.server_command is None


def test_runtime_config_is_frozen() -> None:
    config = RuntimeConfig(mode=ConsoleMode.web_only)
    with pytest.raises(AttributeError):
        config.mode = ConsoleMode.full  # type: ignore[misc]


def test_dirs_follow_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "c"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "d"))
    assert get_config_dir() == tmp_path / "c" / "devserver_console"
    assert get_data_dir() == tmp_path / "d" / "devserver_console"


def test_load_envs_does_not_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "DEVCONSOLE_TOKEN=from-file\nDEVCONSOLE_SEND_URL=https://send.example\n"
    )
    monkeypatch.setenv("DEVCONSOLE_TOKEN", "from-env")
    monkeypatch.delenv("DEVCONSOLE_SEND_URL", raising=False)
    monkeypatch.delenv("DEVCONSOLE_EDITOR", raising=False)

    load_envs(str(env_file))

    assert os.environ["DEVCONSOLE_TOKEN"] == "from-env"
    assert os.environ["DEVCONSOLE_SEND_URL"] == "https://send.example"
    assert "DEVCONSOLE_EDITOR" not in os.environ
