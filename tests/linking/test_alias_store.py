"""Tests for per-project alias records."""

import json
import os

import pytest

from kupler.config import ConfigManager, ConfigSaveError
from kupler.linking.alias_store import AliasStore


class TestAliasStore:
    """Test AliasStore persistence."""

    def test_absent_record_returns_none(self, sandbox):
        store = sandbox.alias_store()

        assert store.get(sandbox.project, "react") is None
        assert store.aliases_for(sandbox.project) == {}

    def test_set_writes_file_immediately(self, sandbox):
        store = sandbox.alias_store()

        store.set(sandbox.project, "react16", "react")

        data = sandbox.read_config()
        assert data["links"] == {str(sandbox.project): {"react16": "react"}}

    def test_records_persist_across_instances(self, sandbox):
        sandbox.alias_store().set(sandbox.project, "react16", "react")

        store = sandbox.alias_store()

        assert store.get(sandbox.project, "react16") == "react"

    def test_set_overwrites_previous_alias(self, sandbox):
        store = sandbox.alias_store()
        store.set(sandbox.project, "pkg", "p-old")

        store.set(sandbox.project, "pkg", "p-new")

        assert sandbox.alias_store().get(sandbox.project, "pkg") == "p-new"

    def test_remove_drops_record_and_empty_project(self, sandbox):
        store = sandbox.alias_store()
        store.set(sandbox.project, "pkg", "p")

        assert store.remove(sandbox.project, "pkg") is True

        assert sandbox.read_config()["links"] == {}
        assert sandbox.alias_store().get(sandbox.project, "pkg") is None

    def test_remove_keeps_other_modules_of_project(self, sandbox):
        store = sandbox.alias_store()
        store.set(sandbox.project, "a", "alias-a")
        store.set(sandbox.project, "b", "alias-b")

        store.remove(sandbox.project, "a")

        assert sandbox.alias_store().aliases_for(sandbox.project) == {"b": "alias-b"}

    def test_remove_absent_record_does_not_write(self, sandbox):
        store = sandbox.alias_store()

        assert store.remove(sandbox.project, "pkg") is False
        assert not sandbox.config_path.exists()

    def test_relative_project_paths_share_absolute_key(self, sandbox, monkeypatch):
        monkeypatch.chdir(sandbox.root)
        store = sandbox.alias_store()

        store.set("project", "pkg", "p")

        assert store.get(sandbox.project, "pkg") == "p"
        assert str(sandbox.project) in sandbox.read_config()["links"]
        assert os.path.isabs(next(iter(sandbox.read_config()["links"])))

    def test_symlinked_project_path_shares_key(self, sandbox):
        via_link = sandbox.root / "project-link"
        os.symlink(sandbox.project, via_link)
        store = sandbox.alias_store()

        store.set(via_link, "pkg", "p")

        assert store.get(sandbox.project, "pkg") == "p"
        assert list(sandbox.read_config()["links"]) == [
            os.path.realpath(sandbox.project)
        ]

    def test_failed_set_leaves_records_unchanged(self, sandbox):
        sandbox.config_path.mkdir()
        store = sandbox.alias_store()

        with pytest.raises(ConfigSaveError):
            store.set(sandbox.project, "pkg", "p")

        assert store.get(sandbox.project, "pkg") is None
        assert store.aliases_for(sandbox.project) == {}

    def test_failed_remove_keeps_record(self, sandbox):
        store = sandbox.alias_store()
        store.set(sandbox.project, "pkg", "p")
        sandbox.config_path.unlink()
        sandbox.config_path.mkdir()

        with pytest.raises(ConfigSaveError):
            store.remove(sandbox.project, "pkg")

        assert store.get(sandbox.project, "pkg") == "p"

    def test_records_are_scoped_per_project(self, sandbox):
        store = sandbox.alias_store()
        other = sandbox.root / "other"

        store.set(sandbox.project, "pkg", "p")

        assert store.get(other, "pkg") is None

    def test_corrupt_config_heals_on_next_set(self, sandbox):
        sandbox.config_path.write_text("{{{ not json")
        store = AliasStore(ConfigManager(sandbox.config_path))

        assert store.get(sandbox.project, "pkg") is None

        store.set(sandbox.project, "pkg", "p")

        data = json.loads(sandbox.config_path.read_text())
        assert data["links"] == {str(sandbox.project): {"pkg": "p"}}

    def test_other_config_keys_are_preserved(self, sandbox):
        sandbox.config_path.write_text(
            json.dumps({"showStack": True, "custom": 1, "links": {}})
        )
        store = sandbox.alias_store()

        store.set(sandbox.project, "pkg", "p")

        data = sandbox.read_config()
        assert data["showStack"] is True
        assert data["custom"] == 1
