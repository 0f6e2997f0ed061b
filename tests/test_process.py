# tests/test_process.py
"""
Test launching hook programs.
"""

import pytest

from webhook_server.hooks import HookDescriptor, SpawnError, spawn_hook

from programs import EXIT_IMMEDIATELY, python_hook


class TestSpawn:
    """Tests for spawn_hook."""

    async def test_spawn_with_stdin_pipe(self, record_hook, output_file):
        """The program gets a writable stdin and sees what is written."""
        process = await spawn_hook(record_hook)

        await process.write(b"hello")
        await process.close_stdin()
        returncode = await process.wait()

        assert returncode == 0
        assert output_file.read_bytes() == b"hello"

    async def test_missing_program(self, tmp_path):
        """A program that does not exist raises SpawnError."""
        hook = HookDescriptor(path="/x", program=str(tmp_path / "no-such-program"))

        with pytest.raises(SpawnError) as exc_info:
            await spawn_hook(hook)

        assert exc_info.value.hook is hook
        assert "no-such-program" in str(exc_info.value)

    async def test_not_executable(self, tmp_path):
        """A file without execute permission raises SpawnError."""
        script = tmp_path / "hook.sh"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)

        with pytest.raises(SpawnError):
            await spawn_hook(HookDescriptor(path="/x", program=str(script)))

    async def test_close_stdin_is_idempotent(self, record_hook):
        """Closing stdin twice is harmless."""
        process = await spawn_hook(record_hook)

        await process.close_stdin()
        await process.close_stdin()

        assert process.stdin_closed
        assert await process.wait() == 0

    async def test_close_after_child_exited(self):
        """Closing stdin of a program that already exited does not raise."""
        process = await spawn_hook(python_hook("/x", EXIT_IMMEDIATELY))
        await process.wait()

        await process.close_stdin()

        assert process.returncode == 0

    async def test_kill_after_exit(self):
        """Killing a reaped process is a no-op."""
        process = await spawn_hook(python_hook("/x", EXIT_IMMEDIATELY))
        await process.close_stdin()
        await process.wait()

        process.kill()

        assert process.returncode == 0
