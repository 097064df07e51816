"""Tests for locating the install root, package manager and global pool."""

import json
from pathlib import Path
from unittest.mock import patch

from kupler.config import KuplerConfig
from kupler.environment import KuplerEnvironment


class TestKuplerEnvironment:
    """Test KuplerEnvironment resolution."""

    def test_default_install_root_under_kupler_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KUPLER_HOME", str(tmp_path))

        environment = KuplerEnvironment.from_config(KuplerConfig(), environ={})

        assert environment.install_root == tmp_path / "modules"
        assert environment.package_manager == "npm"
        assert environment.global_dir_override is None

    def test_environment_variables_are_used(self, tmp_path):
        environment = KuplerEnvironment.from_config(
            KuplerConfig(),
            environ={
                "KUPLER_INSTALL_ROOT": str(tmp_path / "root"),
                "KUPLER_GLOBAL_DIR": str(tmp_path / "pool"),
            },
        )

        assert environment.install_root == tmp_path / "root"
        assert environment.global_pool() == tmp_path / "pool"

    def test_config_wins_over_environment(self, tmp_path):
        config = KuplerConfig(installRoot=str(tmp_path / "configured"))

        environment = KuplerEnvironment.from_config(
            config, environ={"KUPLER_INSTALL_ROOT": str(tmp_path / "env")}
        )

        assert environment.install_root == tmp_path / "configured"

    def test_yarn_lock_selects_yarn(self, tmp_path):
        (tmp_path / "yarn.lock").write_text("")

        environment = KuplerEnvironment.from_config(
            KuplerConfig(installRoot=str(tmp_path)), environ={}
        )

        assert environment.package_manager == "yarn"
        assert environment.uses_yarn is True

    def test_configured_package_manager_wins(self, tmp_path):
        (tmp_path / "yarn.lock").write_text("")
        config = KuplerConfig(installRoot=str(tmp_path), packageManager="npm")

        environment = KuplerEnvironment.from_config(config, environ={})

        assert environment.package_manager == "npm"

    @patch("kupler.environment.query_package_manager")
    def test_npm_global_pool_from_root_query(self, mock_query, tmp_path):
        mock_query.return_value = "/usr/local/lib/node_modules"
        environment = KuplerEnvironment(install_root=tmp_path)

        assert environment.global_pool() == Path("/usr/local/lib/node_modules")
        mock_query.assert_called_once_with("npm", ["root", "-g"])

    @patch("kupler.environment.query_package_manager")
    def test_yarn_global_pool_is_link_directory(self, mock_query, tmp_path):
        mock_query.return_value = "/home/u/.config/yarn/global"
        environment = KuplerEnvironment(install_root=tmp_path, package_manager="yarn")

        assert environment.global_pool() == Path("/home/u/.config/yarn/link")

    @patch("kupler.environment.query_package_manager", return_value=None)
    def test_global_pool_unavailable(self, _mock_query, tmp_path):
        environment = KuplerEnvironment(install_root=tmp_path)

        assert environment.global_pool() is None
        assert environment.global_prefix() is None

    def test_is_installed_requires_package_json(self, sandbox):
        environment = sandbox.environment()
        (sandbox.install_root / "node_modules" / "half").mkdir(parents=True)
        sandbox.install("react")

        assert environment.is_installed("react") is True
        assert environment.is_installed("half") is False
        assert environment.is_installed("absent") is False

    def test_ensure_install_root_creates_manifest(self, tmp_path):
        environment = KuplerEnvironment(install_root=tmp_path / "new-root")

        environment.ensure_install_root()

        manifest = json.loads((tmp_path / "new-root" / "package.json").read_text())
        assert manifest["private"] is True
        assert manifest["dependencies"] == {}

    def test_ensure_install_root_keeps_existing_manifest(self, sandbox):
        sandbox.declare("react")
        environment = sandbox.environment()

        environment.ensure_install_root()

        assert sandbox.manifest().names == ["react"]
