"""Chat relay configuration.

Loads settings from an optional YAML file:
  * relay.settings.yaml: non-secret configuration

Environment variables override the file:
  * WS_PORT: server.port
  * LOG_LEVEL: logging.level
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("relay.settings.yaml")

DEFAULT_WELCOME_MESSAGE = "Welcome to the chat! Start a conversation."


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 8080
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "info"


class ChatSettings(BaseModel):
    """Conversation behaviour that is safe to tune per deployment."""
    welcome_message: str = DEFAULT_WELCOME_MESSAGE


class RelayConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    chat:    ChatSettings    = Field(default_factory=ChatSettings)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Merge environment overrides into raw settings before validation.

    Values are left as strings so pydantic performs the type coercion and
    rejects garbage such as ``WS_PORT=abc``.
    """
    port = os.environ.get("WS_PORT")
    if port:
        data.setdefault("server", {})["port"] = port
        logger.debug("server.port overridden from WS_PORT")

    level = os.environ.get("LOG_LEVEL")
    if level:
        data.setdefault("logging", {})["level"] = level
        logger.debug("logging.level overridden from LOG_LEVEL")

    return data


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> RelayConfig:
    """Load settings from YAML, apply env overrides and validate."""
    path = Path(settings_path) if settings_path is not None else SETTINGS_FILE
    data = _apply_env_overrides(_load_yaml(path))

    config = RelayConfig(**data)
    logger.info(
        "Settings loaded (server=%s:%s, logging.level=%s)",
        config.server.host,
        config.server.port,
        config.logging.level,
    )
    return config


_config: Optional[RelayConfig] = None


def get_config() -> RelayConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    global _config
    _config = None
