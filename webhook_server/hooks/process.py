# webhook_server/hooks/process.py
"""
Process launcher - starts a hook program with a pipe on its stdin.

stdout, stderr and the environment are inherited from the server process.
"""

import asyncio
from typing import Optional

from ..logging import get_logger
from .registry import HookDescriptor

logger = get_logger(__name__)


class SpawnError(Exception):
    """Raised when a hook program cannot be started."""

    def __init__(self, hook: HookDescriptor, message: str):
        self.hook = hook
        super().__init__(f"Failed to execute command `{hook.command_line}`: {message}")


class HookProcess:
    """
    One running hook program.

    Owns the write end of the program's stdin and the process handle. The
    stdin pipe is closed at most once, whichever path gets there first.
    """

    def __init__(self, hook: HookDescriptor, process: asyncio.subprocess.Process):
        if process.stdin is None:
            raise SpawnError(hook, "stdin pipe is not available")
        self.hook = hook
        self.process = process
        self.stdin: asyncio.StreamWriter = process.stdin
        self._stdin_closed = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def stdin_closed(self) -> bool:
        return self._stdin_closed

    async def write(self, data: bytes) -> None:
        """Write to stdin and wait until the pipe has room again."""
        self.stdin.write(data)
        await self.stdin.drain()

    async def close_stdin(self) -> None:
        """
        Shut down the write side of stdin so the program sees EOF.

        A program that already exited may have closed its end; that is not
        an error here.
        """
        if self._stdin_closed:
            return
        self._stdin_closed = True
        self.stdin.close()
        try:
            await self.stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass
        except OSError as e:
            logger.error(
                "pipe_close_failed",
                path=self.hook.path,
                pid=self.pid,
                error=repr(e),
            )

    async def wait(self) -> int:
        return await self.process.wait()

    def kill(self) -> None:
        """Send SIGKILL. A process that is already gone is left alone."""
        try:
            self.process.kill()
        except ProcessLookupError:
            pass


async def spawn_hook(hook: HookDescriptor) -> HookProcess:
    """
    Start the hook's program with a fresh pipe bound to its stdin.

    Args:
        hook: Hook to execute

    Returns:
        HookProcess owning the stdin pipe and process handle

    Raises:
        SpawnError: The program could not be executed or stdin is missing
    """
    logger.info("hook_executing", path=hook.path, command=hook.command_line)

    try:
        process = await asyncio.create_subprocess_exec(
            hook.program,
            *hook.args,
            stdin=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise SpawnError(hook, repr(e)) from e

    return HookProcess(hook, process)
