# webhook_server/listener.py
"""
Where the server listens: a TCP address, a Unix socket path, or a socket
inherited from the service manager (systemd socket activation).
"""

import os
import socket
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .config import ConfigError, ServerConfig

# First descriptor passed by the socket-activation protocol
LISTEN_FDS_START = 3


@dataclass(frozen=True)
class TcpListener:
    host: str
    port: int

    def uvicorn_options(self) -> Dict[str, Any]:
        return {"host": self.host, "port": self.port}

    def describe(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"http://{host}:{self.port}"


@dataclass(frozen=True)
class UnixListener:
    path: str

    def uvicorn_options(self) -> Dict[str, Any]:
        return {"uds": self.path}

    def describe(self) -> str:
        return f"unix:{self.path}"


@dataclass(frozen=True)
class InheritedListener:
    """An already bound, listening socket; TCP or Unix."""
    fd: int
    family: socket.AddressFamily

    def uvicorn_options(self) -> Dict[str, Any]:
        return {"fd": self.fd}

    def describe(self) -> str:
        return f"fd:{self.fd} ({self.family.name})"


Listener = Union[TcpListener, UnixListener, InheritedListener]


def inherited_listener(environ: Optional[Mapping[str, str]] = None) -> Optional[InheritedListener]:
    """
    Pick up a listening socket passed in through `LISTEN_FDS`.

    `LISTEN_PID`, when present, must name this process; otherwise the
    descriptors were meant for someone else.

    Args:
        environ: Environment to read, defaults to os.environ

    Returns:
        InheritedListener for the first passed descriptor, or None
    """
    env = os.environ if environ is None else environ

    listen_pid = env.get("LISTEN_PID")
    if listen_pid is not None:
        try:
            if int(listen_pid) != os.getpid():
                return None
        except ValueError:
            return None

    try:
        count = int(env.get("LISTEN_FDS", "0"))
    except ValueError:
        return None
    if count < 1:
        return None

    fd = LISTEN_FDS_START
    try:
        probe = socket.socket(fileno=fd)
    except OSError as e:
        raise ConfigError(f"`LISTEN_FDS` is set but fd {fd} is not a socket: {e}") from e
    try:
        family = socket.AddressFamily(probe.family)
        if family not in (socket.AF_INET, socket.AF_INET6, getattr(socket, "AF_UNIX", None)):
            raise ConfigError(f"Inherited fd {fd} has unsupported address family {family.name}")
    finally:
        # Hand the descriptor back untouched
        probe.detach()

    return InheritedListener(fd=fd, family=family)


def resolve_listener(
    config: ServerConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> Listener:
    """
    Choose the listener: `bind` first, then `unix`, then an inherited socket.

    Raises:
        ConfigError: None of them is available
    """
    if config.bind is not None:
        host, port = config.bind
        return TcpListener(host=host, port=port)

    if config.unix is not None:
        return UnixListener(path=config.unix)

    listener = inherited_listener(environ)
    if listener is not None:
        return listener

    raise ConfigError("Either `bind` in config or `$LISTEN_FD` must be provided")
