"""Application settings from the environment and an optional JSON/YAML file."""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from . import constants
from .exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class AppSettings:
    """Centralized configuration for the resolver, server and provisioning"""

    # Database files
    ASN_DB: str = os.getenv("IPGEO_ASN_DB", constants.ASN_DB_PATH)
    CITY_DB: str = os.getenv("IPGEO_CITY_DB", constants.CITY_DB_PATH)
    GEOCN_DB: str = os.getenv("IPGEO_GEOCN_DB", constants.GEOCN_DB_PATH)

    # Server
    HOST: str = os.getenv("IPGEO_HOST", constants.DEFAULT_HOST)
    PORT: int = int(os.getenv("IPGEO_PORT", str(constants.DEFAULT_PORT)))

    # Provisioning
    DOWNLOAD_TIMEOUT: float = float(os.getenv("DOWNLOAD_TIMEOUT", str(constants.DOWNLOAD_TIMEOUT)))
    DOWNLOAD_MAX_RETRIES: int = int(
        os.getenv("DOWNLOAD_MAX_RETRIES", str(constants.DOWNLOAD_MAX_RETRIES))
    )
    DOWNLOAD_RETRY_DELAY: float = float(
        os.getenv("DOWNLOAD_RETRY_DELAY", str(constants.DOWNLOAD_RETRY_DELAY))
    )

    # Resolution
    DEFAULT_NETWORK_TYPE: str = os.getenv("DEFAULT_NETWORK_TYPE", constants.DEFAULT_NETWORK_TYPE)
    PRIMARY_LANGUAGE: str = os.getenv("PRIMARY_LANGUAGE", constants.PRIMARY_LANGUAGE)
    FALLBACK_LANGUAGE: str = os.getenv("FALLBACK_LANGUAGE", constants.FALLBACK_LANGUAGE)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR", "logs") or None
    MASK_CLIENT_IPS: bool = os.getenv("MASK_CLIENT_IPS", "False").lower() == "true"

    # Keys accepted in a config file and the setting each one feeds
    FILE_KEYS = {
        "asn_db_path": "ASN_DB",
        "city_db_path": "CITY_DB",
        "geo_cn_db_path": "GEOCN_DB",
        "log_level": "LOG_LEVEL",
        "log_dir": "LOG_DIR",
        "default_network_type": "DEFAULT_NETWORK_TYPE",
    }

    @property
    def database_paths(self) -> Dict[str, str]:
        """Map of source name to database file."""
        return {"asn": self.ASN_DB, "city": self.CITY_DB, "geocn": self.GEOCN_DB}

    @classmethod
    def from_file(cls, path: str | Path | None) -> "AppSettings":
        """
        Build settings from the environment, overlaid with a JSON or YAML file.

        A missing file keeps the defaults; a malformed one raises ConfigError.
        """
        settings = cls()
        if path is None:
            return settings

        config_path = Path(path)
        if not config_path.exists():
            logger.warning(f"Config file {config_path} not found, using defaults")
            return settings

        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        settings = settings.apply(data)
        logger.info(f"Loaded configuration from {config_path}")
        return settings

    def apply(self, data: Dict[str, Any]) -> "AppSettings":
        """Return a copy with the values of a config mapping applied."""
        overrides: Dict[str, Any] = {}
        for key, attr in self.FILE_KEYS.items():
            if data.get(key) is not None:
                overrides[attr] = str(data[key])

        server = data.get("server") or {}
        if not isinstance(server, dict):
            raise ConfigError("'server' must be a mapping")
        if server.get("host"):
            overrides["HOST"] = str(server["host"])
        if server.get("port") is not None:
            try:
                overrides["PORT"] = int(server["port"])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid server port: {server['port']!r}") from e

        return replace(self, **overrides)
