# webhook_server/hooks/supervisor.py
"""
Lifecycle supervisor - waits for a hook program, killing it on timeout.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..logging import get_logger
from .process import HookProcess

logger = get_logger(__name__)


class HookStatus(Enum):
    """Terminal state of a supervised hook."""
    EXITED = "EXITED"
    TIMED_OUT = "TIMED_OUT"
    WAIT_ERROR = "WAIT_ERROR"


@dataclass
class HookOutcome:
    status: HookStatus
    returncode: Optional[int] = None


async def _reap(
    process: HookProcess,
    wait_task: "asyncio.Future[int]",
    event: str = "hook_exited",
) -> HookOutcome:
    try:
        returncode = await wait_task
    except Exception as e:
        logger.error(
            "hook_wait_failed",
            path=process.hook.path,
            pid=process.pid,
            error=repr(e),
        )
        return HookOutcome(HookStatus.WAIT_ERROR)

    logger.info(
        event,
        path=process.hook.path,
        pid=process.pid,
        returncode=returncode,
    )
    return HookOutcome(HookStatus.EXITED, returncode)


async def supervise(process: HookProcess, timeout: float) -> HookOutcome:
    """
    Wait for a hook program to finish, racing it against a timer.

    A timeout of 0 waits for as long as the program runs. If the timer fires
    at the same moment the program exits, the exit wins and nothing is
    killed.

    Args:
        process: Running hook
        timeout: Seconds to allow, 0 for no limit

    Returns:
        HookOutcome with the terminal status and return code
    """
    wait_task = asyncio.ensure_future(process.wait())

    if timeout <= 0:
        return await _reap(process, wait_task)

    done, _ = await asyncio.wait({wait_task}, timeout=timeout)
    if wait_task in done or process.returncode is not None:
        return await _reap(process, wait_task)

    logger.warning(
        "hook_timed_out",
        path=process.hook.path,
        pid=process.pid,
        timeout=timeout,
    )
    process.kill()

    outcome = await _reap(process, wait_task, event="hook_killed")
    if outcome.status is HookStatus.EXITED:
        return HookOutcome(HookStatus.TIMED_OUT, outcome.returncode)
    return outcome
