import asyncio
import logging
import os
from typing import Optional

from devserver_console.actions.base import ActionError

logger = logging.getLogger(__name__)

RESET_CACHE_ENV = "DEVCONSOLE_RESET_CACHE"


class DevServerProcess:
    """Supervises the development server subprocess, when one was configured."""

    def __init__(self, command: Optional[str], stop_timeout: float = 5.0) -> None:
        self.command = command
        self.stop_timeout = stop_timeout
        self._proc: Optional[asyncio.subprocess.Process] = None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def start(self, reset_cache: bool = False) -> None:
        if not self.command or self.running:
            return
        env = dict(os.environ)
        if reset_cache:
            env[RESET_CACHE_ENV] = "1"
        logger.info(f"Starting dev server: {self.command} (reset_cache={reset_cache})")
        self._proc = await asyncio.create_subprocess_shell(
            self.command, env=env, stdin=asyncio.subprocess.DEVNULL
        )

    async def stop(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.returncode is not None:
            return
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("Dev server did not stop in time; killing it")
            proc.kill()
            await proc.wait()

    async def restart(self, reset_cache: bool = False) -> None:
        if not self.command:
            raise ActionError("No dev server command configured; pass --server-command")
        await self.stop()
        await self.start(reset_cache=reset_cache)
