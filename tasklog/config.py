"""Configuration: a frozen dataclass loaded from environment variables.

An optional YAML file named by CONFIG_PATH may supply the same settings under a
top-level ``tasklog`` mapping. Environment variables take precedence over it.
"""

import logging
import os
from dataclasses import dataclass, fields

import yaml

from tasklog.locking import LOCK_BACKENDS

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# field name -> environment variable
ENV_VARS = {
    "host": "SERVER_HOST",
    "port": "PORT",
    "log_file": "LOG_FILE",
    "public_dir": "PUBLIC_DIR",
    "lock_backend": "LOCK_BACKEND",
    "lock_retries": "LOCK_RETRIES",
    "lock_retry_wait_seconds": "LOCK_RETRY_WAIT_SECONDS",
    "lock_retry_max_wait_seconds": "LOCK_RETRY_MAX_WAIT_SECONDS",
    "backup_corrupt": "BACKUP_CORRUPT",
    "max_body_bytes": "MAX_BODY_BYTES",
    "log_level": "LOG_LEVEL",
}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    host: str = "0.0.0.0"
    port: int = 3000
    log_file: str = os.path.join(_BASE_DIR, "log.json")
    public_dir: str = os.path.join(_BASE_DIR, "public")
    lock_backend: str = "file"
    lock_retries: int = 5
    lock_retry_wait_seconds: float = 0.1
    lock_retry_max_wait_seconds: float = 2.0
    backup_corrupt: bool = True
    max_body_bytes: int = 100 * 1024
    log_level: str = "INFO"

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.lock_backend not in LOCK_BACKENDS:
            raise ValueError(f"lock_backend must be one of {LOCK_BACKENDS}, got {self.lock_backend!r}")
        if self.lock_retries < 0:
            raise ValueError("lock_retries must not be negative")
        if self.max_body_bytes <= 0:
            raise ValueError("max_body_bytes must be positive")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")


def load_yaml_config(path: str | None) -> dict:
    """Return the ``tasklog`` section of a YAML file, or {} if there is none."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    section = data.get("tasklog", {}) if isinstance(data, dict) else {}
    if not isinstance(section, dict):
        raise ValueError(f"'tasklog' section in {path} must be a mapping")
    logger.info("Loaded YAML config from %s", path)
    return section


def load_config(yaml_path: str | None = None) -> Config:
    """Build Config from defaults, an optional YAML file, then environment variables."""
    if yaml_path is None:
        yaml_path = os.environ.get("CONFIG_PATH")

    values = {}
    known = {f.name for f in fields(Config)}
    for key, value in load_yaml_config(yaml_path).items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        values[key] = value
    for key, env_var in ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw is not None:
            values[key] = raw

    converters = {
        "port": int,
        "lock_retries": int,
        "max_body_bytes": int,
        "lock_retry_wait_seconds": float,
        "lock_retry_max_wait_seconds": float,
        "backup_corrupt": _parse_bool,
        "log_level": lambda v: str(v).upper(),
        "lock_backend": lambda v: str(v).lower(),
    }
    for key, convert in converters.items():
        if key in values:
            values[key] = convert(values[key])

    return Config(**values)
