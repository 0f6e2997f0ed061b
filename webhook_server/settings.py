# webhook_server/settings.py
"""
Process settings read from the environment.

Hook definitions live in the TOML config file (see config.py); this only
covers where that file is and how the process logs.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Server process configuration."""

    # Hook config file
    config_path: str = os.getenv("WEBHOOK_CONFIG", "webhook.toml")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = _env_flag("LOG_JSON", "true")
    log_file: Optional[str] = os.getenv("LOG_FILE")

    # uvicorn per-request access lines
    access_log: bool = _env_flag("ACCESS_LOG", "false")


settings = Settings()
