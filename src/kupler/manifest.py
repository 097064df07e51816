"""
Manifest parsing for Kupler's install root.

Reads the install root's package.json once and turns each declared
dependency into a PackageDependency, so alias installs
("react16": "npm:react@16.14.1") are recognised in one place.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "package.json"

# npm:<pkg>[@<version>], where <pkg> may be scoped (@scope/name)
_ALIAS_SPEC_PATTERN = re.compile(r"^npm:(?P<target>@?[^@]+)(?:@(?P<version>.+))?$")


@dataclass(frozen=True)
class PackageDependency:
    """A declared dependency and its parsed version specifier."""

    name: str
    version_spec: str
    is_alias_install: bool = False
    alias_target: Optional[str] = None
    alias_version: Optional[str] = None

    @classmethod
    def parse(cls, name: str, version_spec: str) -> "PackageDependency":
        """Build a dependency, detecting ``npm:<pkg>@<version>`` alias specs."""
        match = _ALIAS_SPEC_PATTERN.match(version_spec.strip())
        if match is None:
            return cls(name=name, version_spec=version_spec)

        return cls(
            name=name,
            version_spec=version_spec,
            is_alias_install=True,
            alias_target=match.group("target"),
            alias_version=match.group("version"),
        )


class Manifest:
    """Declared dependencies of a package.json, in declaration order."""

    def __init__(self, dependencies: Optional[Dict[str, PackageDependency]] = None):
        self.dependencies: Dict[str, PackageDependency] = dependencies or {}

    @classmethod
    def from_dict(cls, data: Dict) -> "Manifest":
        raw = data.get("dependencies") or {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring non-object 'dependencies' in package.json")
            raw = {}

        dependencies = {
            name: PackageDependency.parse(name, str(spec))
            for name, spec in raw.items()
        }
        return cls(dependencies)

    @classmethod
    def load(cls, root: Path) -> "Manifest":
        """
        Load the manifest of ``root``.

        A missing or unreadable package.json is treated as declaring
        nothing; the install root may not have been initialised yet.
        """
        manifest_path = Path(root) / MANIFEST_FILE_NAME

        if not manifest_path.exists():
            logger.debug(f"No manifest at {manifest_path}")
            return cls()

        try:
            with open(manifest_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read manifest {manifest_path}: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Manifest {manifest_path} is not a JSON object")
            return cls()

        return cls.from_dict(data)

    @property
    def names(self) -> List[str]:
        return list(self.dependencies)

    def get(self, name: str) -> Optional[PackageDependency]:
        return self.dependencies.get(name)

    def declares(self, name: str) -> bool:
        return name in self.dependencies
