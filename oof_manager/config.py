from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "oof_manager.yaml"


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


@dataclass
class GraphConfig:
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authority_host: str = "https://login.microsoftonline.com"
    base_url: str = "https://graph.microsoft.com/v1.0"
    timeout_seconds: float = 30.0

    @property
    def authority(self) -> str:
        return f"{self.authority_host.rstrip('/')}/{self.tenant_id}"


@dataclass
class PathsConfig:
    input: str = "users.csv"
    output_dir: str = "."
    internal_message: str = "InternalMessage.html"
    external_message: str = "ExternalMessage.html"
    # Looked up in the current directory when the configured template is missing
    internal_fallback: str = "InternalMessage.html"
    external_fallback: str = "ExternalMessage.html"


@dataclass
class InputConfig:
    delimiter: str = ","


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = "oof_manager.log"


@dataclass
class AppConfig:
    graph: GraphConfig = field(default_factory=GraphConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    input: InputConfig = field(default_factory=InputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = DEFAULT_CONFIG_PATH) -> AppConfig:
    """
    Load the YAML configuration and merge it onto the defaults.

    A missing file is not an error: the defaults (plus environment credentials)
    are used instead. Graph credentials not present in the file fall back to
    OOF_TENANT_ID, OOF_CLIENT_ID and OOF_CLIENT_SECRET.
    """
    data: Dict[str, Any] = {}
    if path and os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")
        LOGGER.debug("Loaded configuration from %s", path)
    else:
        LOGGER.debug("Config file '%s' not found. Using default configuration.", path)

    def section(key: str) -> Dict[str, Any]:
        v = data.get(key, None)
        return v if isinstance(v, dict) else {}

    graph = section("graph")
    paths = section("paths")
    input_cfg = section("input")
    logging_cfg = section("logging")

    try:
        timeout_seconds = float(graph.get("timeout_seconds", GraphConfig.timeout_seconds))
    except (TypeError, ValueError):
        raise ConfigError(f"graph.timeout_seconds must be a number, got {graph.get('timeout_seconds')!r}")

    defaults = PathsConfig()
    return AppConfig(
        graph=GraphConfig(
            tenant_id=graph.get("tenant_id") or _env("OOF_TENANT_ID"),
            client_id=graph.get("client_id") or _env("OOF_CLIENT_ID"),
            client_secret=graph.get("client_secret") or _env("OOF_CLIENT_SECRET"),
            authority_host=graph.get("authority_host", GraphConfig.authority_host),
            base_url=graph.get("base_url", GraphConfig.base_url),
            timeout_seconds=timeout_seconds,
        ),
        paths=PathsConfig(
            input=paths.get("input", defaults.input),
            output_dir=paths.get("output_dir", defaults.output_dir),
            internal_message=paths.get("internal_message", defaults.internal_message),
            external_message=paths.get("external_message", defaults.external_message),
            internal_fallback=paths.get("internal_fallback", defaults.internal_fallback),
            external_fallback=paths.get("external_fallback", defaults.external_fallback),
        ),
        input=InputConfig(delimiter=str(input_cfg.get("delimiter", ","))),
        logging=LoggingConfig(
            level=logging_cfg.get("level", "INFO"),
            file=logging_cfg.get("file", "oof_manager.log"),
        ),
    )
