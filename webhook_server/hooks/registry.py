# webhook_server/hooks/registry.py
"""
Hook registry - the immutable path -> hook table.

Built once from configuration before the listener accepts anything and never
changed afterwards, so concurrent lookups need no locking.
"""

import shlex
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from ..logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HookDescriptor:
    """An external program bound to one request path."""
    path: str
    program: str
    args: Tuple[str, ...] = ()
    secret: Optional[bytes] = None
    # Overrides the server-wide timeout when set; 0 means no limit
    timeout: Optional[float] = None

    @property
    def command_line(self) -> str:
        """Program and arguments, shell-quoted for log lines."""
        return shlex.join((self.program, *self.args))

    @property
    def requires_signature(self) -> bool:
        return self.secret is not None


class HookRegistry:
    """
    Read-only mapping from request path to HookDescriptor.

    Paths are matched exactly: no prefix matching, no trailing-slash
    normalisation. When two hooks share a path the later one wins.
    """

    def __init__(self, hooks: Iterable[HookDescriptor] = ()):
        table = {}
        for hook in hooks:
            if hook.path in table:
                logger.warning(
                    "duplicate_hook_path",
                    path=hook.path,
                    replaced=table[hook.path].command_line,
                    command=hook.command_line,
                )
            table[hook.path] = hook
        self._hooks: Mapping[str, HookDescriptor] = MappingProxyType(table)

    def lookup(self, path: str) -> Optional[HookDescriptor]:
        """Return the hook bound to exactly this path, or None."""
        return self._hooks.get(path)

    def paths(self) -> List[str]:
        return list(self._hooks)

    def __contains__(self, path: object) -> bool:
        return path in self._hooks

    def __len__(self) -> int:
        return len(self._hooks)
