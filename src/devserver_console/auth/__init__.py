from devserver_console.auth.session_storage import (
    AuthSession,
    delete_session,
    get_current_username,
    get_session,
    save_session,
)

__all__ = [
    "AuthSession",
    "delete_session",
    "get_current_username",
    "get_session",
    "save_session",
]
