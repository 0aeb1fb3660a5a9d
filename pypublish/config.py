"""Configuration management for pypublish."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"

# Setting name -> environment variables checked in order
ENV_VARS = {
    "bucket": ("PYPUBLISH_BUCKET",),
    "region": ("PYPUBLISH_REGION", "AWS_REGION", "AWS_DEFAULT_REGION"),
    "endpoint_url": ("PYPUBLISH_ENDPOINT_URL",),
    "profile": ("PYPUBLISH_PROFILE", "AWS_PROFILE"),
}


class Config:
    """Settings read from the environment and the user's config file.

    Environment variables take precedence over the config file. The file
    lives in ``~/.config/pypublish/`` unless ``PYPUBLISH_CONFIG_DIR`` points
    elsewhere.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding config.json (see get_config_dir)
        """
        self._config_dir = config_dir
        self._file_values: Optional[dict[str, Any]] = None

    def get_config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        env_dir = os.environ.get("PYPUBLISH_CONFIG_DIR")
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "pypublish"

    def get_config_path(self) -> Path:
        return self.get_config_dir() / CONFIG_FILE_NAME

    def _load_file(self) -> dict[str, Any]:
        """Read the config file once, an unreadable file counts as empty."""
        if self._file_values is None:
            self._file_values = {}
            path = self.get_config_path()
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        data = json.load(f)
                    if isinstance(data, dict):
                        self._file_values = data
                    else:
                        logger.warning(f"Ignoring malformed config file {path}")
                except (OSError, ValueError) as e:
                    logger.warning(f"Failed to load config file {path}: {e}")
        return self._file_values

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Resolve a setting.

        Args:
            name: Setting name (bucket, region, endpoint_url, profile)
            default: Value returned when the setting is not configured

        Returns:
            Setting value or default
        """
        for env_var in ENV_VARS.get(name, ()):
            value = os.environ.get(env_var)
            if value:
                return value

        value = self._load_file().get(name)
        if value:
            return str(value)
        return default

    @property
    def bucket(self) -> Optional[str]:
        return self.get("bucket")

    @property
    def region(self) -> Optional[str]:
        return self.get("region")

    @property
    def endpoint_url(self) -> Optional[str]:
        return self.get("endpoint_url")

    @property
    def profile(self) -> Optional[str]:
        return self.get("profile")

    def save(self, **values: Optional[str]) -> Path:
        """Merge values into the config file.

        Args:
            **values: Settings to store; None values are removed

        Returns:
            Path of the written config file
        """
        data = dict(self._load_file())
        for name, value in values.items():
            if value is None:
                data.pop(name, None)
            else:
                data[name] = value

        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)

        self._file_values = data
        logger.debug(f"Saved configuration to {path}")
        return path


config = Config()
