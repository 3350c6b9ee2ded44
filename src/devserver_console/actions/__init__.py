from devserver_console.actions.base import ActionError, DevicePlatform, DevServerActions

__all__ = ["ActionError", "DevServerActions", "DevicePlatform"]
