# webhook_server/config.py
"""
Hook configuration file (`webhook.toml`).

Example:

    bind = ["127.0.0.1", 8080]
    timeout = 60

    [[hook]]
    location = "/deploy"
    program = "/usr/local/bin/deploy"
    args = ["--prod"]
    secret = "s3cr3t"
"""

import ipaddress
import tomllib
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .dispatch import DEFAULT_TIMEOUT
from .hooks import HookDescriptor, HookRegistry


class ConfigError(Exception):
    """Raised when the server cannot be configured from the file or environment."""
    pass


class HookConfig(BaseModel):
    """One `[[hook]]` table."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    location: str = Field(alias="path")
    program: str = Field(min_length=1)
    args: List[str] = Field(default_factory=list)
    secret: Optional[str] = None
    timeout: Optional[float] = Field(default=None, ge=0)

    @field_validator("location")
    @classmethod
    def _absolute_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("hook location must start with `/`")
        return value

    def to_descriptor(self) -> HookDescriptor:
        return HookDescriptor(
            path=self.location,
            program=self.program,
            args=tuple(self.args),
            secret=self.secret.encode("utf-8") if self.secret is not None else None,
            timeout=self.timeout,
        )


class ServerConfig(BaseModel):
    """Top level of `webhook.toml`."""
    model_config = ConfigDict(extra="forbid")

    bind: Optional[Tuple[str, int]] = None
    unix: Optional[str] = None
    # Seconds; 0 disables the limit
    timeout: float = Field(default=DEFAULT_TIMEOUT, ge=0)
    hook: List[HookConfig]

    @field_validator("bind")
    @classmethod
    def _valid_bind(cls, value: Optional[Tuple[str, int]]) -> Optional[Tuple[str, int]]:
        if value is None:
            return value
        host, port = value
        ipaddress.ip_address(host)
        if not 0 <= port <= 65535:
            raise ValueError(f"port out of range: {port}")
        return value

    def build_registry(self) -> HookRegistry:
        return HookRegistry(hook.to_descriptor() for hook in self.hook)


def parse_config(text: str) -> ServerConfig:
    """
    Parse and validate config file contents.

    Raises:
        ConfigError: Invalid TOML or values
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config: {e}") from e

    try:
        return ServerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Failed to parse config: {e}") from e


def load_config(path: Union[str, Path]) -> ServerConfig:
    """
    Read and validate the config file at `path`.

    Raises:
        ConfigError: File missing or unreadable, invalid TOML or values
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to open `{path}`: {e}") from e
    return parse_config(text)
