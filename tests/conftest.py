"""
Shared pytest fixtures for Kupler tests.

Provides a sandbox holding an install root, a global pool and a project
directory, so link operations run against real symlinks in a temp dir.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from kupler.config import ConfigManager
from kupler.delegate import PackageManagerDelegate
from kupler.environment import KuplerEnvironment
from kupler.linking.alias_store import AliasStore
from kupler.linking.link_engine import LinkEngine
from kupler.manifest import Manifest
from kupler.results import ErrorKind, OperationResult
from kupler.utils.exception_logger import ExceptionLogger


class KuplerSandbox:
    """Install root, global pool, project and config file under one temp dir."""

    def __init__(self, root: Path):
        self.root = root
        self.home = root / "home"
        self.install_root = root / "kupler-modules"
        self.pool = root / "global" / "node_modules"
        self.project = root / "project"
        self.config_path = self.home / "conf.json"
        self.dependencies: Dict[str, str] = {}

        for directory in (self.home, self.install_root, self.pool, self.project):
            directory.mkdir(parents=True, exist_ok=True)
        self._write_manifest()

    def _write_manifest(self) -> None:
        manifest = {"name": "kupler-modules", "dependencies": self.dependencies}
        (self.install_root / "package.json").write_text(json.dumps(manifest))

    def declare(self, name: str, spec: str = "^1.0.0") -> None:
        self.dependencies[name] = spec
        self._write_manifest()

    def install(self, name: str, spec: str = "^1.0.0", declare: bool = True) -> Path:
        """Declare ``name`` and create its directory under node_modules."""
        if declare:
            self.declare(name, spec)
        module_dir = self.install_root / "node_modules" / name
        module_dir.mkdir(parents=True, exist_ok=True)
        (module_dir / "package.json").write_text(json.dumps({"name": name}))
        return module_dir

    def publish(self, name: str) -> Path:
        """Create the pool link ``npm link`` would create for ``name``."""
        link_path = self.pool / name
        link_path.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(self.install_root / "node_modules" / name, link_path)
        return link_path

    def pool_listing(self) -> List[str]:
        return sorted(os.listdir(self.pool))

    def environment(self) -> KuplerEnvironment:
        return KuplerEnvironment(
            install_root=self.install_root,
            package_manager="npm",
            global_dir_override=self.pool,
        )

    def manifest(self) -> Manifest:
        return Manifest.load(self.install_root)

    def alias_store(self) -> AliasStore:
        return AliasStore(ConfigManager(self.config_path))

    def engine(
        self,
        delegate: Optional[MagicMock] = None,
        alias_store: Optional[AliasStore] = None,
        global_pool: Optional[Path] = None,
        pool_available: bool = True,
    ) -> LinkEngine:
        if global_pool is None and pool_available:
            global_pool = self.pool
        return LinkEngine(
            environment=self.environment(),
            manifest=self.manifest(),
            alias_store=alias_store or self.alias_store(),
            delegate=delegate or make_delegate(),
            global_pool=global_pool,
        )

    def read_config(self) -> dict:
        return json.loads(self.config_path.read_text())


def make_delegate(returncode: int = 0) -> MagicMock:
    """A delegate double whose every run exits with ``returncode``."""
    delegate = MagicMock(spec=PackageManagerDelegate)

    def run(subcommand, args, cwd):
        if returncode == 0:
            return OperationResult.ok(returncode=0)
        return OperationResult.fail(
            ErrorKind.DELEGATE_FAILED,
            f"`npm {subcommand}` exited with status {returncode}",
            returncode=returncode,
        )

    delegate.run.side_effect = run
    return delegate


@pytest.fixture
def sandbox(tmp_path) -> KuplerSandbox:
    return KuplerSandbox(tmp_path)


@pytest.fixture
def delegate() -> MagicMock:
    return make_delegate()


@pytest.fixture
def failing_delegate() -> MagicMock:
    return make_delegate(returncode=1)


@pytest.fixture
def kupler_env(sandbox, monkeypatch):
    """Point Kupler's home, install root and global pool at the sandbox."""
    monkeypatch.setenv("KUPLER_HOME", str(sandbox.home))
    monkeypatch.setenv("KUPLER_INSTALL_ROOT", str(sandbox.install_root))
    monkeypatch.setenv("KUPLER_GLOBAL_DIR", str(sandbox.pool))
    return sandbox


@pytest.fixture(autouse=True)
def reset_exception_logger():
    ExceptionLogger._instance = None
    yield
    ExceptionLogger._instance = None
