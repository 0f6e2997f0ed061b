# webhook_server/hooks/__init__.py
"""
Hook execution: registry, signature checks, process launch, body streaming
and supervision.
"""

from .registry import HookDescriptor, HookRegistry
from .signature import (
    SIGNATURE_HEADER,
    MalformedSignatureError,
    SignatureContext,
    SignatureError,
    SignatureStatus,
    UnsupportedAlgorithmError,
    verify_signature,
)
from .process import HookProcess, SpawnError, spawn_hook
from .streamer import BodyReadError, StreamOutcome, StreamReport, stream_body
from .supervisor import HookOutcome, HookStatus, supervise

__all__ = [
    "HookDescriptor",
    "HookRegistry",
    "SIGNATURE_HEADER",
    "MalformedSignatureError",
    "SignatureContext",
    "SignatureError",
    "SignatureStatus",
    "UnsupportedAlgorithmError",
    "verify_signature",
    "HookProcess",
    "SpawnError",
    "spawn_hook",
    "BodyReadError",
    "StreamOutcome",
    "StreamReport",
    "stream_body",
    "HookOutcome",
    "HookStatus",
    "supervise",
]
