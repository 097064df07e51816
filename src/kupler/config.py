"""Configuration management for Kupler."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

KUPLER_HOME_ENV = "KUPLER_HOME"
CONFIG_FILE_NAME = "conf.json"
_OPTIONAL_KEYS = ("installRoot", "globalDir", "packageManager")


def get_kupler_home() -> Path:
    """Directory holding Kupler's configuration, logs and default install root."""
    override = os.environ.get(KUPLER_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".kupler"


class ConfigSaveError(RuntimeError):
    """The configuration file could not be written."""


class KuplerConfig(BaseModel):
    """Main configuration for Kupler.

    Field aliases match the keys written to ``conf.json``. Keys this model
    does not know about are kept and written back unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    links: Dict[str, Dict[str, str]] = Field(
        default_factory=dict,
        description="Per-project alias records: project dir -> module -> alias",
    )
    show_stack: bool = Field(
        default=False,
        alias="showStack",
        description="Print the underlying traceback when an operation fails",
    )
    install_root: Optional[str] = Field(
        default=None,
        alias="installRoot",
        description="Directory holding Kupler's package.json and node_modules",
    )
    global_dir: Optional[str] = Field(
        default=None,
        alias="globalDir",
        description="Global pool directory (overrides npm/yarn detection)",
    )
    package_manager: Optional[Literal["npm", "yarn"]] = Field(
        default=None,
        alias="packageManager",
        description="Package manager executable to delegate to",
    )


class ConfigManager:
    """Manages configuration loading and saving.

    Loading never fails: a missing, unparsable or invalid file yields the
    default configuration. Saving rewrites the whole file.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or (get_kupler_home() / CONFIG_FILE_NAME)
        self._config: Optional[KuplerConfig] = None

    def load(self) -> KuplerConfig:
        """Load configuration from file, falling back to defaults."""
        if not self.config_path.exists():
            logger.debug(f"No config at {self.config_path}, using defaults")
            self._config = KuplerConfig()
            return self._config

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
            self._config = KuplerConfig.model_validate(data)
        except (json.JSONDecodeError, ValidationError, ValueError, OSError) as e:
            logger.warning(
                f"Failed to load config from {self.config_path}, starting fresh: {e}"
            )
            self._config = KuplerConfig()

        return self._config

    def save(self, config: Optional[KuplerConfig] = None) -> None:
        """
        Save configuration to disk, replacing the previous file.

        Uses temp file + rename so a crash never leaves a truncated file.
        There is no locking; concurrent writers race and the last one wins.
        """
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        data = config.model_dump(by_alias=True)
        # Unset optional settings are left out of the file
        for key in _OPTIONAL_KEYS:
            if data.get(key) is None:
                data.pop(key, None)

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=str(self.config_path.parent), prefix=".conf_", suffix=".tmp"
            )
        except OSError as e:
            raise ConfigSaveError(f"Failed to save config {self.config_path}: {e}")

        try:
            with os.fdopen(tmp_fd, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            os.replace(tmp_path, str(self.config_path))
            logger.debug(f"Config saved to {self.config_path}")

        except Exception as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise ConfigSaveError(f"Failed to save config {self.config_path}: {e}")

        self._config = config
