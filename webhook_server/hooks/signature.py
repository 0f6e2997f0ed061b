# webhook_server/hooks/signature.py
"""
Request body authentication with the `x-hub-signature` header.

The header carries `<algorithm>=<hex digest>` where the digest is an HMAC of
the raw request body keyed with the hook's secret. Only `sha1` is accepted.
"""

import binascii
import hashlib
import hmac
from enum import Enum
from typing import Callable, Dict, Tuple

SIGNATURE_HEADER = "x-hub-signature"

# Algorithm token -> hash constructor
SUPPORTED_ALGORITHMS: Dict[str, Callable] = {
    "sha1": hashlib.sha1,
}


class SignatureStatus(Enum):
    """Result of checking a signature header against a body."""
    VALID = "VALID"
    MISMATCH = "MISMATCH"
    MALFORMED_HEADER = "MALFORMED_HEADER"
    UNSUPPORTED_ALGORITHM = "UNSUPPORTED_ALGORITHM"


class SignatureError(Exception):
    """Base exception for unusable signature headers."""
    status = SignatureStatus.MALFORMED_HEADER


class MalformedSignatureError(SignatureError):
    """Raised when the header has no `=`, bad hex, or the wrong digest length."""
    status = SignatureStatus.MALFORMED_HEADER


class UnsupportedAlgorithmError(SignatureError):
    """Raised when the algorithm token is not one we can verify."""
    status = SignatureStatus.UNSUPPORTED_ALGORITHM

    def __init__(self, algorithm: str):
        self.algorithm = algorithm
        super().__init__(f"Unsupported signature algorithm: {algorithm!r}")


def parse_signature_header(value: str) -> Tuple[str, bytes]:
    """
    Split a signature header into its algorithm token and digest bytes.

    The algorithm is checked before the digest is decoded, so an unknown
    token is reported as unsupported even when the hex part is garbage.

    Args:
        value: Raw header value, e.g. "sha1=0a1b..."

    Returns:
        (algorithm, digest) tuple

    Raises:
        MalformedSignatureError: No `=`, invalid hex, or wrong digest length
        UnsupportedAlgorithmError: Algorithm token is not supported
    """
    algorithm, sep, digest_hex = value.partition("=")
    if not sep:
        raise MalformedSignatureError("Signature header has no `=` separator")

    constructor = SUPPORTED_ALGORITHMS.get(algorithm)
    if constructor is None:
        raise UnsupportedAlgorithmError(algorithm)

    try:
        digest = binascii.unhexlify(digest_hex)
    except (binascii.Error, ValueError) as e:
        raise MalformedSignatureError(f"Invalid hex digest: {e}")

    expected_size = constructor().digest_size
    if len(digest) != expected_size:
        raise MalformedSignatureError(
            f"Digest is {len(digest)} bytes, expected {expected_size}"
        )

    return algorithm, digest


class SignatureContext:
    """
    Per-request HMAC accumulator for one signed body.

    Feed body chunks with update(), then call verify() once.
    """

    def __init__(self, algorithm: str, expected: bytes, secret: bytes):
        self.algorithm = algorithm
        self.expected = expected
        self._mac = hmac.new(secret, digestmod=SUPPORTED_ALGORITHMS[algorithm])

    @classmethod
    def from_header(cls, value: str, secret: bytes) -> "SignatureContext":
        """Build a context from a header value, raising SignatureError if unusable."""
        algorithm, expected = parse_signature_header(value)
        return cls(algorithm, expected, secret)

    def update(self, chunk: bytes) -> None:
        self._mac.update(chunk)

    def verify(self) -> SignatureStatus:
        """Compare the accumulated HMAC with the expected digest in constant time."""
        if hmac.compare_digest(self._mac.digest(), self.expected):
            return SignatureStatus.VALID
        return SignatureStatus.MISMATCH


def compute_signature(secret: bytes, body: bytes, algorithm: str = "sha1") -> str:
    """Render the header value a sender holding `secret` would attach to `body`."""
    digest = hmac.new(secret, body, SUPPORTED_ALGORITHMS[algorithm]).hexdigest()
    return f"{algorithm}={digest}"


def verify_signature(header: str, secret: bytes, body: bytes) -> SignatureStatus:
    """
    Check a complete body against a signature header in one call.

    Args:
        header: `x-hub-signature` header value
        secret: Hook secret used as the HMAC key
        body: Exact raw request body

    Returns:
        SignatureStatus describing the outcome
    """
    try:
        context = SignatureContext.from_header(header, secret)
    except SignatureError as e:
        return e.status
    context.update(body)
    return context.verify()
