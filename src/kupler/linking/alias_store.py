"""
Alias Store for per-project alias records.

Maps (project directory, module name) to the alias the module is used
under in that project. Every mutation rewrites the config file at once.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from ..config import ConfigManager, ConfigSaveError, KuplerConfig


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class AliasStore:
    """
    Durable alias records, kept in the ``links`` section of the config.

    Project keys are resolved real paths so the same project is found no
    matter how it was reached.
    """

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self._config: Optional[KuplerConfig] = None

    @staticmethod
    def project_key(project_directory: PathLike) -> str:
        return os.path.realpath(str(project_directory))

    @property
    def config(self) -> KuplerConfig:
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> KuplerConfig:
        """Load the configuration; corrupt or absent files load as empty."""
        self._config = self.config_manager.load()
        return self._config

    def get(self, project_directory: PathLike, module_name: str) -> Optional[str]:
        """Return the stored alias for the pair, or None."""
        links = self.config.links.get(self.project_key(project_directory), {})
        return links.get(module_name)

    def aliases_for(self, project_directory: PathLike) -> Dict[str, str]:
        return dict(self.config.links.get(self.project_key(project_directory), {}))

    def set(
        self, project_directory: PathLike, module_name: str, alias_name: str
    ) -> None:
        """
        Record ``alias_name`` for the pair and persist immediately.

        Raises:
            ConfigSaveError: If the file could not be written; the
                in-memory records are left as they were
        """
        key = self.project_key(project_directory)
        snapshot = self._snapshot()
        self.config.links.setdefault(key, {})[module_name] = alias_name
        self._save(snapshot)
        logger.info(f"Saved alias {module_name} -> {alias_name} for {key}")

    def remove(self, project_directory: PathLike, module_name: str) -> bool:
        """
        Drop the record for the pair and persist immediately.

        Returns:
            True if a record was removed

        Raises:
            ConfigSaveError: If the file could not be written; the
                record is kept in memory
        """
        key = self.project_key(project_directory)
        links = self.config.links.get(key)

        if not links or module_name not in links:
            return False

        snapshot = self._snapshot()
        del links[module_name]
        if not links:
            del self.config.links[key]

        self._save(snapshot)
        logger.info(f"Removed alias for {module_name} in {key}")
        return True

    def _snapshot(self) -> Dict[str, Dict[str, str]]:
        return {key: dict(links) for key, links in self.config.links.items()}

    def _save(self, snapshot: Dict[str, Dict[str, str]]) -> None:
        try:
            self.config_manager.save(self.config)
        except ConfigSaveError:
            self.config.links = snapshot
            raise
