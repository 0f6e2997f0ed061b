# webhook_server/dispatch.py
"""
Dispatch service - routes one request to its hook and runs it in the background.

The status code is decided from the path and the signature header alone.
Reading the body, verifying it, feeding the program and waiting for it all
happen in a background task after the status has been handed back.
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterable, Mapping, Optional, Set

from .hooks import (
    SIGNATURE_HEADER,
    HookDescriptor,
    HookOutcome,
    HookProcess,
    HookRegistry,
    MalformedSignatureError,
    SignatureContext,
    SpawnError,
    UnsupportedAlgorithmError,
    spawn_hook,
    stream_body,
    supervise,
)
from .logging import get_logger

logger = get_logger(__name__)

# Server-wide default, in seconds
DEFAULT_TIMEOUT = 60.0


@dataclass
class HookRequest:
    """
    An already parsed inbound request.

    `headers` must look up names case-insensitively or use lowercase keys.
    `body_released` is set once the background task no longer needs the body,
    so the HTTP layer knows when it may finish the exchange.
    """
    path: str
    headers: Mapping[str, str]
    body: AsyncIterable[bytes]
    body_released: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass
class HookResponse:
    status_code: int
    # True when a background task took ownership of the request body
    dispatched: bool = False


class DispatchService:
    """
    Shared, read-only dispatcher used by every connection.

    Apart from the set of in-flight tasks (kept so they are not garbage
    collected mid-run) it holds no per-request state.
    """

    def __init__(self, registry: HookRegistry, timeout: float = DEFAULT_TIMEOUT):
        self.registry = registry
        self.timeout = timeout
        self._tasks: Set["asyncio.Task[Optional[HookOutcome]]"] = set()

    @property
    def in_flight(self) -> int:
        """Number of dispatches whose program has not been reaped yet."""
        return len(self._tasks)

    def timeout_for(self, hook: HookDescriptor) -> float:
        return hook.timeout if hook.timeout is not None else self.timeout

    async def handle(self, request: HookRequest) -> HookResponse:
        """
        Decide the response for a request and start its hook if it has one.

        Returns without reading the request body. When the hook has a secret,
        a missing header gives 401, a malformed one 400 and an unknown
        algorithm 406, and nothing is started. A well-formed header gives 200
        whatever the digest turns out to be; a wrong digest only means the
        program receives an empty stdin.

        Args:
            request: Parsed request

        Returns:
            HookResponse with the status code to send
        """
        hook = self.registry.lookup(request.path)
        if hook is None:
            logger.info("hook_not_found", path=request.path)
            return HookResponse(404)

        signature: Optional[SignatureContext] = None
        if hook.requires_signature:
            header = request.headers.get(SIGNATURE_HEADER)
            if header is None:
                logger.info("signature_missing", path=hook.path)
                return HookResponse(401)
            try:
                signature = SignatureContext.from_header(header, hook.secret)
            except MalformedSignatureError as e:
                logger.info("signature_malformed", path=hook.path, error=str(e))
                return HookResponse(400)
            except UnsupportedAlgorithmError as e:
                logger.info("signature_unsupported", path=hook.path, algorithm=e.algorithm)
                return HookResponse(406)

        try:
            process = await spawn_hook(hook)
        except SpawnError as e:
            logger.error("hook_spawn_failed", path=hook.path, error=str(e))
            return HookResponse(500)

        task = asyncio.create_task(
            self._run(request, process, signature),
            name=f"hook:{hook.path}:{process.pid}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        # A task cancelled before its first step never enters _run
        task.add_done_callback(lambda _: request.body_released.set())

        return HookResponse(200, dispatched=True)

    async def _run(
        self,
        request: HookRequest,
        process: HookProcess,
        signature: Optional[SignatureContext],
    ) -> Optional[HookOutcome]:
        """Background sequence: forward body, close stdin, supervise."""
        hook = process.hook
        try:
            report = await stream_body(request.body, process, signature)
            request.body_released.set()

            logger.debug(
                "hook_stdin_done",
                path=hook.path,
                pid=process.pid,
                outcome=report.outcome.value,
                bytes_read=report.bytes_read,
                bytes_written=report.bytes_written,
            )

            return await supervise(process, self.timeout_for(hook))

        except Exception:
            # Failures stay confined to this request
            logger.exception("dispatch_failed", path=hook.path, pid=process.pid)
            process.kill()
            await process.close_stdin()
            await self._reap_after_failure(process)
            return None

        finally:
            # Also reached on cancellation; the HTTP layer waits on this
            request.body_released.set()

    async def _reap_after_failure(self, process: HookProcess) -> None:
        try:
            returncode = await process.wait()
        except Exception as e:
            logger.error("hook_wait_failed", path=process.hook.path, pid=process.pid, error=repr(e))
            return
        logger.info("hook_killed", path=process.hook.path, pid=process.pid, returncode=returncode)

    async def join(self) -> None:
        """Wait for every dispatch started so far to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """
        Called when the server stops accepting requests.

        Running programs are left alone; they keep the stdin they were given
        and finish on their own.
        """
        if self._tasks:
            logger.warning("dispatches_in_flight_at_shutdown", count=len(self._tasks))
