import contextlib
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.keys import Keys

logger = logging.getLogger(__name__)

KeyCallback = Callable[[str], None]

EOT = "\x04"


class RawInputChannel(ABC):
    """Terminal input that delivers one callback per keystroke while active."""

    def __init__(self) -> None:
        self._on_key: Optional[KeyCallback] = None

    def set_key_callback(self, callback: KeyCallback) -> None:
        self._on_key = callback

    def emit(self, data: str) -> None:
        if self._on_key is not None:
            self._on_key(data)

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether the terminal is in raw mode and keystrokes are being read."""

    @abstractmethod
    def activate(self) -> None:
        """Enter raw mode and start listening. No-op when already active."""

    @abstractmethod
    def deactivate(self) -> None:
        """Stop listening and restore cooked mode. No-op when already inactive."""


class TerminalInputChannel(RawInputChannel):
    """Raw keystroke channel over prompt_toolkit's platform input."""

    def __init__(self, input: Optional[Input] = None) -> None:
        super().__init__()
        self._input = input
        self._stack: Optional[contextlib.ExitStack] = None

    @property
    def active(self) -> bool:
        return self._stack is not None

    def activate(self) -> None:
        if self._stack is not None:
            return
        if self._input is None:
            self._input = create_input(always_prefer_tty=True)
        stack = contextlib.ExitStack()
        stack.enter_context(self._input.raw_mode())
        stack.enter_context(self._input.attach(self._on_readable))
        self._stack = stack
        logger.debug("Raw input channel activated")

    def deactivate(self) -> None:
        if self._stack is None:
            return
        stack, self._stack = self._stack, None
        stack.close()
        logger.debug("Raw input channel deactivated")

    def _on_readable(self) -> None:
        source = self._input
        if source is None or self._stack is None:
            return
        key_presses = source.read_keys()
        key_presses.extend(source.flush_keys())
        for key_press in key_presses:
            if key_press.key == Keys.CPRResponse:
                continue
            self.emit(key_press.data)
            # A handler may have suspended input while processing this key
            if not self.active:
                return
        if source.closed:
            # stdin reached EOF; treat it like Ctrl+D
            self.emit(EOT)
