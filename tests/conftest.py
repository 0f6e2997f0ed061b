# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

from pathlib import Path

import pytest

from webhook_server.hooks import HookDescriptor

from programs import RECORD_STDIN, SECRET, python_hook


@pytest.fixture
def output_file(tmp_path: Path) -> Path:
    """Where a RECORD_STDIN hook writes what it received."""
    return tmp_path / "stdin.bin"


@pytest.fixture
def record_hook(output_file: Path) -> HookDescriptor:
    """Unsigned hook on /deploy that records its stdin."""
    return python_hook("/deploy", RECORD_STDIN, str(output_file))


@pytest.fixture
def signed_record_hook(output_file: Path) -> HookDescriptor:
    """Signed hook on /deploy that records its stdin."""
    return python_hook("/deploy", RECORD_STDIN, str(output_file), secret=SECRET)
