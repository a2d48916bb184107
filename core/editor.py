"""
Opens workspace files in the host's editor.
"""

import asyncio
import logging
import os
import shlex
from typing import Optional

logger = logging.getLogger(__name__)


class EditorLauncher:
    """
    Launches an editor command for a file.

    The command is taken from the configuration, then from $VISUAL and
    $EDITOR. Started processes are reaped in the background.
    """

    def __init__(self, command: Optional[str] = None):
        self.command = command or os.getenv("VISUAL") or os.getenv("EDITOR")
        self._waiters: set[asyncio.Task] = set()

    async def open_document(self, path: str) -> bool:
        """
        Open a file in the editor.

        Returns:
            True if the editor process was started
        """
        if not self.command:
            logger.warning(f"No editor configured, cannot open {path}")
            return False

        args = shlex.split(self.command) + [path]
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Failed to start editor '{args[0]}': {e}")
            return False

        waiter = asyncio.ensure_future(self._reap(process, args[0]))
        self._waiters.add(waiter)
        waiter.add_done_callback(self._waiters.discard)
        return True

    @staticmethod
    async def _reap(process: asyncio.subprocess.Process, name: str) -> None:
        returncode = await process.wait()
        if returncode:
            logger.warning(f"Editor '{name}' exited with code {returncode}")

    async def wait_closed(self) -> None:
        """Wait for all started editor processes to exit."""
        if self._waiters:
            await asyncio.gather(*list(self._waiters))
