"""Locates Kupler's install root, package manager and global pool."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .config import KuplerConfig, get_kupler_home
from .manifest import MANIFEST_FILE_NAME
from .utils.process_runner import query_package_manager

logger = logging.getLogger(__name__)

INSTALL_ROOT_ENV = "KUPLER_INSTALL_ROOT"
GLOBAL_DIR_ENV = "KUPLER_GLOBAL_DIR"


@dataclass
class KuplerEnvironment:
    """Filesystem locations and package manager used by one invocation."""

    install_root: Path
    package_manager: str = "npm"
    global_dir_override: Optional[Path] = None

    @classmethod
    def from_config(
        cls, config: KuplerConfig, environ: Optional[Mapping[str, str]] = None
    ) -> "KuplerEnvironment":
        """
        Build the environment from config, then environment variables.

        Config values win over ``KUPLER_INSTALL_ROOT`` / ``KUPLER_GLOBAL_DIR``.
        The package manager is yarn when the install root has a yarn.lock.
        """
        environ = os.environ if environ is None else environ

        install_root_value = config.install_root or environ.get(INSTALL_ROOT_ENV)
        if install_root_value:
            install_root = Path(install_root_value).expanduser()
        else:
            install_root = get_kupler_home() / "modules"
        install_root = install_root.absolute()

        global_dir_value = config.global_dir or environ.get(GLOBAL_DIR_ENV)
        global_dir = Path(global_dir_value).expanduser() if global_dir_value else None

        package_manager = config.package_manager
        if package_manager is None:
            package_manager = (
                "yarn" if (install_root / "yarn.lock").exists() else "npm"
            )

        return cls(
            install_root=install_root,
            package_manager=package_manager,
            global_dir_override=global_dir,
        )

    @property
    def uses_yarn(self) -> bool:
        return self.package_manager == "yarn"

    @property
    def node_modules(self) -> Path:
        return self.install_root / "node_modules"

    def module_path(self, module_name: str) -> Path:
        """Directory of ``module_name`` inside the install root."""
        return self.node_modules / module_name

    def is_installed(self, module_name: str) -> bool:
        return (self.module_path(module_name) / MANIFEST_FILE_NAME).exists()

    def global_pool(self) -> Optional[Path]:
        """
        Directory where globally linked modules live.

        npm: ``npm root -g``. yarn: the ``link`` directory next to yarn's
        global directory, where ``yarn link`` registers packages.

        Returns:
            The pool path, or None if the package manager could not tell
        """
        if self.global_dir_override is not None:
            return self.global_dir_override

        if self.uses_yarn:
            yarn_global = query_package_manager("yarn", ["global", "dir"])
            if yarn_global is None:
                return None
            return Path(yarn_global).parent / "link"

        npm_root = query_package_manager("npm", ["root", "-g"])
        return Path(npm_root) if npm_root else None

    def global_prefix(self) -> Optional[Path]:
        """Prefix of the package manager's global installation."""
        prefix = query_package_manager("npm", ["prefix", "-g"])
        return Path(prefix) if prefix else None

    def ensure_install_root(self) -> Path:
        """Create the install root with a minimal private package.json."""
        self.install_root.mkdir(parents=True, exist_ok=True)
        manifest_path = self.install_root / MANIFEST_FILE_NAME

        if not manifest_path.exists():
            manifest = {
                "name": "kupler-modules",
                "private": True,
                "description": "Modules installed through kupler",
                "dependencies": {},
            }
            with open(manifest_path, "w") as f:
                json.dump(manifest, f, indent=2)
                f.write("\n")
            logger.info(f"Initialised install root at {self.install_root}")

        return self.install_root
