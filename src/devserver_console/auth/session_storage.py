import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from devserver_console.runtime_config import ACCESS_TOKEN_ENV, get_config_dir
from devserver_console.settings import read_entries, write_entries

SESSION_SECRET = "session_secret"
USERNAME = "username"


@dataclass(frozen=True)
class AuthSession:
    """Credentials of the signed-in user.

    ``access_token`` comes from the environment and cannot be signed out of from
    the console; ``session_secret`` comes from an interactive login.
    """

    username: Optional[str] = None
    access_token: Optional[str] = None
    session_secret: Optional[str] = None


def get_auth_file_path() -> Path:
    """Get the path to the auth file in the XDG config directory."""
    return get_config_dir() / "auth"


def get_session() -> Optional[AuthSession]:
    """
    Return the current session.

    The environment token takes precedence over a stored session.
    """
    token = os.environ.get(ACCESS_TOKEN_ENV)
    entries = read_entries(get_auth_file_path())
    if token:
        return AuthSession(username=entries.get(USERNAME) or None, access_token=token)

    secret = entries.get(SESSION_SECRET)
    if not secret:
        return None
    return AuthSession(username=entries.get(USERNAME) or None, session_secret=secret)


def save_session(username: str, session_secret: str) -> None:
    """Store a session with user-only permissions."""
    auth_file = get_auth_file_path()
    write_entries(auth_file, {USERNAME: username, SESSION_SECRET: session_secret})
    auth_file.chmod(0o600)


def delete_session() -> bool:
    """
    Delete the stored session.

    Returns:
        True if a session file was removed, False if there was nothing to remove.
    """
    auth_file = get_auth_file_path()
    if not auth_file.exists():
        return False
    auth_file.unlink()
    return True


def get_current_username() -> Optional[str]:
    session = get_session()
    return session.username if session else None
