"""Configuration management for botflow."""

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"

# Environment variable -> Config attribute
ENV_OVERRIDES = {
    "BOTFLOW_API_URL": "api_base_url",
    "BOTFLOW_API_TOKEN": "api_token",
    "BOTFLOW_WABA_ACCOUNT": "waba_account",
    "BOTFLOW_TIMEOUT": "timeout",
    "BOTFLOW_LAYOUT_DIRECTION": "layout_direction",
}


@dataclass
class Config:
    """
    botflow configuration.

    waba_account is the WhatsApp Business account whose flows are listed and
    created; it is passed explicitly to the calls that need it.
    """

    api_base_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None
    waba_account: Optional[str] = None
    timeout: float = 30.0
    layout_direction: str = "LR"


def get_config_path() -> Path:
    """Default configuration file path."""
    return Path.home() / ".botflow" / "config.json"


def _coerce(name: str, value):
    if name == "timeout":
        return float(value)
    return value


def load_config(path: Optional[Union[str, Path]] = None, apply_env: bool = True) -> Config:
    """
    Load configuration from a JSON file, then apply environment overrides.

    A missing or unreadable file yields the defaults. Null values keep the
    default. With apply_env=False only the file is read, which is what gets
    written back by ``botflow configure``.
    """
    config_path = Path(path) if path else get_config_path()
    known = {f.name for f in fields(Config)}
    values = {}

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            values.update({k: _coerce(k, v) for k, v in data.items() if k in known and v is not None})
        except (json.JSONDecodeError, OSError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", config_path, e)
            values = {}

    if not apply_env:
        return Config(**values)

    for env_name, attr in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            try:
                values[attr] = _coerce(attr, value)
            except ValueError:
                logger.warning("Ignoring invalid %s=%r", env_name, value)

    return Config(**values)


def save_config(config: Config, path: Optional[Union[str, Path]] = None) -> Path:
    """Save configuration to file, readable by the owner only."""
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.touch(mode=0o600, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(asdict(config), f, indent=2)
    return config_path
