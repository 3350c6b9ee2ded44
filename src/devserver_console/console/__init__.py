"""
Console subpackage: raw input channel, suspension arbiter, command table and
dispatcher, line-input sub-sessions and rendering.
"""

from devserver_console.console.console import ConsoleInterface, TerminalConsole
from devserver_console.console.suspension import SuspensionArbiter, SuspensionError

__all__ = ["ConsoleInterface", "SuspensionArbiter", "SuspensionError", "TerminalConsole"]
