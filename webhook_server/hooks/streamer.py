# webhook_server/hooks/streamer.py
"""
Body streamer - moves the request body into a hook's stdin.

Unsigned hooks get each chunk as it arrives. Signed hooks get nothing until
the whole body has been buffered and its HMAC checked. Either way stdin is
closed when the streamer returns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterable, List, Optional

from ..logging import get_logger
from .process import HookProcess
from .signature import SignatureContext, SignatureStatus

logger = get_logger(__name__)


class BodyReadError(Exception):
    """Raised by a body source when the client's body cannot be read."""
    pass


class StreamOutcome(Enum):
    """How forwarding ended."""
    COMPLETE = "COMPLETE"
    MISMATCH = "MISMATCH"
    READ_ERROR = "READ_ERROR"
    BROKEN_PIPE = "BROKEN_PIPE"
    WRITE_ERROR = "WRITE_ERROR"


@dataclass
class StreamReport:
    """Summary of one body transfer."""
    outcome: StreamOutcome
    bytes_read: int = 0
    bytes_written: int = 0


class _WriteFailed(Exception):
    def __init__(self, outcome: StreamOutcome):
        self.outcome = outcome


async def _forward(process: HookProcess, chunk: bytes, report: StreamReport) -> None:
    try:
        await process.write(chunk)
    except (BrokenPipeError, ConnectionResetError):
        # The program exited without reading everything; nobody is listening
        logger.debug(
            "hook_stdin_closed_early",
            path=process.hook.path,
            pid=process.pid,
            bytes_written=report.bytes_written,
        )
        raise _WriteFailed(StreamOutcome.BROKEN_PIPE)
    except OSError as e:
        logger.error(
            "pipe_write_failed",
            path=process.hook.path,
            pid=process.pid,
            error=repr(e),
        )
        raise _WriteFailed(StreamOutcome.WRITE_ERROR)
    report.bytes_written += len(chunk)


async def stream_body(
    body: AsyncIterable[bytes],
    process: HookProcess,
    signature: Optional[SignatureContext] = None,
) -> StreamReport:
    """
    Forward a request body to the hook's stdin, then close stdin.

    Args:
        body: Request body chunks, consumed once
        process: Running hook whose stdin receives the body
        signature: When given, the body is buffered and verified first and
            nothing is written unless the digest matches

    Returns:
        StreamReport with the outcome and byte counts
    """
    report = StreamReport(outcome=StreamOutcome.COMPLETE)
    buffered: List[bytes] = []

    try:
        try:
            async for chunk in body:
                if not chunk:
                    continue
                report.bytes_read += len(chunk)
                if signature is not None:
                    signature.update(chunk)
                    buffered.append(chunk)
                else:
                    await _forward(process, chunk, report)
        except BodyReadError as e:
            logger.error(
                "request_body_read_failed",
                path=process.hook.path,
                pid=process.pid,
                bytes_read=report.bytes_read,
                error=str(e),
            )
            report.outcome = StreamOutcome.READ_ERROR
            return report

        if signature is not None:
            if signature.verify() is not SignatureStatus.VALID:
                logger.warning(
                    "signature_mismatch",
                    path=process.hook.path,
                    pid=process.pid,
                    bytes_read=report.bytes_read,
                )
                report.outcome = StreamOutcome.MISMATCH
                return report
            await _forward(process, b"".join(buffered), report)

        return report

    except _WriteFailed as e:
        report.outcome = e.outcome
        return report

    finally:
        await process.close_stdin()
