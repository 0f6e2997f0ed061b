# tests/test_streamer.py
"""
Test forwarding request bodies into hook stdin.

Verifies ordering, signature gating, and behaviour on read and write errors.
"""

import errno

from webhook_server.hooks import (
    BodyReadError,
    SignatureContext,
    StreamOutcome,
    spawn_hook,
    stream_body,
)
from webhook_server.hooks.signature import compute_signature

from programs import EXIT_IMMEDIATELY, SECRET, chunks, python_hook


async def _failing_body(parts):
    for part in parts:
        yield part
    raise BodyReadError("client went away")


class TestUnsignedForwarding:
    """Tests for hooks without a secret."""

    async def test_body_forwarded_in_order(self, record_hook, output_file):
        """Chunks arrive byte-for-byte and in order, followed by EOF."""
        parts = [b"first,", b"second,", b"", b"third"]
        process = await spawn_hook(record_hook)

        report = await stream_body(chunks(parts), process)
        await process.wait()

        assert report.outcome is StreamOutcome.COMPLETE
        assert report.bytes_read == report.bytes_written == len(b"".join(parts))
        assert process.stdin_closed
        assert output_file.read_bytes() == b"first,second,third"

    async def test_empty_body(self, record_hook, output_file):
        """An empty body still closes stdin so the program sees EOF."""
        process = await spawn_hook(record_hook)

        report = await stream_body(chunks([]), process)
        await process.wait()

        assert report.outcome is StreamOutcome.COMPLETE
        assert output_file.read_bytes() == b""

    async def test_large_body(self, record_hook, output_file):
        """Bodies larger than the pipe buffer are delivered whole."""
        parts = [bytes([i]) * 65536 for i in range(16)]
        process = await spawn_hook(record_hook)

        report = await stream_body(chunks(parts), process)
        await process.wait()

        assert report.bytes_written == 16 * 65536
        assert output_file.read_bytes() == b"".join(parts)

    async def test_read_error_keeps_written_bytes(self, record_hook, output_file):
        """A body read error stops forwarding but keeps what was already sent."""
        process = await spawn_hook(record_hook)

        report = await stream_body(_failing_body([b"partial"]), process)
        await process.wait()

        assert report.outcome is StreamOutcome.READ_ERROR
        assert process.stdin_closed
        assert output_file.read_bytes() == b"partial"

    async def test_child_exited_early(self):
        """Writing to a program that exited is a benign broken pipe."""
        process = await spawn_hook(python_hook("/x", EXIT_IMMEDIATELY))
        await process.wait()

        report = await stream_body(chunks([b"x" * 1_000_000]), process)

        assert report.outcome is StreamOutcome.BROKEN_PIPE
        assert report.bytes_written == 0
        assert process.stdin_closed

    async def test_write_error(self, record_hook, output_file, monkeypatch):
        """A pipe error other than a broken pipe stops forwarding and closes stdin once."""
        process = await spawn_hook(record_hook)
        closes = []
        real_close = process.close_stdin

        async def failing_write(data):
            raise OSError(errno.EIO, "Input/output error")

        async def counting_close():
            closes.append(True)
            await real_close()

        monkeypatch.setattr(process, "write", failing_write)
        monkeypatch.setattr(process, "close_stdin", counting_close)

        report = await stream_body(chunks([b"one", b"two"]), process)
        await process.wait()

        assert report.outcome is StreamOutcome.WRITE_ERROR
        assert report.bytes_read == 3
        assert report.bytes_written == 0
        assert closes == [True]
        assert process.stdin_closed
        assert output_file.read_bytes() == b""


class TestSignedForwarding:
    """Tests for hooks with a secret."""

    async def test_valid_signature_forwards_body(self, signed_record_hook, output_file):
        """A matching digest forwards the whole body."""
        body = [b'{"ref": ', b'"main"}']
        context = SignatureContext.from_header(compute_signature(SECRET, b"".join(body)), SECRET)
        process = await spawn_hook(signed_record_hook)

        report = await stream_body(chunks(body), process, context)
        await process.wait()

        assert report.outcome is StreamOutcome.COMPLETE
        assert output_file.read_bytes() == b'{"ref": "main"}'

    async def test_mismatch_forwards_nothing(self, signed_record_hook, output_file):
        """A wrong digest closes stdin without writing a byte."""
        context = SignatureContext.from_header("sha1=" + "de" * 20, SECRET)
        process = await spawn_hook(signed_record_hook)

        report = await stream_body(chunks([b"hello"]), process, context)
        await process.wait()

        assert report.outcome is StreamOutcome.MISMATCH
        assert report.bytes_read == 5
        assert report.bytes_written == 0
        assert process.stdin_closed
        assert output_file.read_bytes() == b""

    async def test_read_error_before_verification(self, signed_record_hook, output_file):
        """A read error on a signed body means nothing is forwarded."""
        context = SignatureContext.from_header(compute_signature(SECRET, b"partial"), SECRET)
        process = await spawn_hook(signed_record_hook)

        report = await stream_body(_failing_body([b"partial"]), process, context)
        await process.wait()

        assert report.outcome is StreamOutcome.READ_ERROR
        assert report.bytes_written == 0
        assert output_file.read_bytes() == b""
