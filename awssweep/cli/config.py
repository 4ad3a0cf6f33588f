"""Application configuration.

Settings come from ``~/.awssweep/config.yaml`` and are overridden by
environment variables, which are in turn overridden by CLI options.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from ..sweep.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".awssweep" / "config.yaml"


@dataclass
class Config:
    """Sweeper settings.

    Attributes:
        aws_profile: AWS profile name (optional)
        region: AWS region (optional)
        log_level: Log level name
        audit_dir: Directory for the run history (optional)
    """

    aws_profile: Optional[str] = None
    region: Optional[str] = None
    log_level: str = "WARNING"
    audit_dir: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load settings from file and environment.

        Args:
            path: Settings file (default: ~/.awssweep/config.yaml, skipped if missing)

        Returns:
            Config instance

        Raises:
            ConfigError: If the settings file exists but cannot be parsed
        """
        config_path = path or DEFAULT_CONFIG_PATH
        data = {}

        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Cannot load settings from {config_path}: {e}") from e

            if not isinstance(data, dict):
                raise ConfigError(f"Settings in {config_path} must be a mapping")
            logger.debug(f"Loaded settings from {config_path}")

        config = cls(
            aws_profile=data.get("aws_profile"),
            region=data.get("region"),
            log_level=data.get("log_level", "WARNING"),
            audit_dir=data.get("audit_dir"),
        )

        config.aws_profile = os.environ.get("AWSSWEEP_PROFILE") or os.environ.get("AWS_PROFILE") or config.aws_profile
        config.region = os.environ.get("AWSSWEEP_REGION") or os.environ.get("AWS_DEFAULT_REGION") or config.region
        config.log_level = str(os.environ.get("AWSSWEEP_LOG_LEVEL", config.log_level)).upper()
        config.audit_dir = os.environ.get("AWSSWEEP_AUDIT_DIR", config.audit_dir)

        return config
