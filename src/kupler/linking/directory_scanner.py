"""
Directory Scanner for classifying global pool entries.

Reports every module directory or symlink in a directory together with
whether it is a link Kupler published (``is_linked``) or a dangling link
to a module that should live in Kupler's install root (``is_missing``).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List


logger = logging.getLogger(__name__)


def is_within(path: Path, root: Path) -> bool:
    """True if ``path`` is ``root`` or lies underneath it."""
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


@dataclass
class GlobalDirectoryEntry:
    """Link and reality status of one directory entry."""

    name: str
    path: Path
    is_symbolic_link: bool
    real_path: Path
    path_exists: bool
    # Non-strict resolution; differs from real_path only for broken links
    target_path: Path
    is_linked: bool = False
    is_missing: bool = False


@dataclass
class ScanResult:
    """Entries of a scanned directory in enumeration order."""

    names: List[str] = field(default_factory=list)
    stats: Dict[str, GlobalDirectoryEntry] = field(default_factory=dict)

    def linked_names(self) -> List[str]:
        return [name for name in self.names if self.stats[name].is_linked]

    def missing_names(self) -> List[str]:
        return [name for name in self.names if self.stats[name].is_missing]


class DirectoryScanner:
    """
    Classifies directory entries against Kupler's install root.

    Every scan reads the filesystem afresh; nothing is cached between calls.
    """

    def __init__(self, install_root: Path, declared: Iterable[str]):
        """
        Initialize the scanner.

        Args:
            install_root: Kupler's install root; links resolving inside it
                are Kupler's own
            declared: Module names declared in the install root's manifest
        """
        self.install_root = Path(os.path.realpath(install_root))
        self.declared = set(declared)

    def scan(self, directory: Path) -> ScanResult:
        """
        Scan the immediate children of ``directory``.

        Plain files are ignored. A real directory named ``@scope`` is
        expanded into ``@scope/<child>`` entries. A missing directory
        yields an empty result.
        """
        result = ScanResult()
        directory = Path(directory)

        if not directory.is_dir():
            logger.debug(f"Scan directory does not exist: {directory}")
            return result

        for dirent in self._list_module_dirents(directory):
            name = dirent.name
            if name.startswith("@") and not dirent.is_symlink():
                for scoped in self._list_module_dirents(Path(dirent.path)):
                    self._add_entry(result, f"{name}/{scoped.name}", scoped)
                continue

            self._add_entry(result, name, dirent)

        return result

    def _list_module_dirents(self, directory: Path) -> List[os.DirEntry]:
        with os.scandir(directory) as it:
            return [
                dirent
                for dirent in it
                if dirent.is_symlink() or dirent.is_dir(follow_symlinks=False)
            ]

    def _add_entry(self, result: ScanResult, name: str, dirent: os.DirEntry) -> None:
        result.names.append(name)
        result.stats[name] = self.classify(name, Path(dirent.path))

    def classify(self, name: str, path: Path) -> GlobalDirectoryEntry:
        """Build the entry for ``path``; a broken link is reported, not raised."""
        is_symbolic_link = path.is_symlink()
        target_path = Path(os.path.realpath(path))

        try:
            real_path = path.resolve(strict=True)
            path_exists = real_path.exists()
        except (OSError, RuntimeError) as e:
            # Broken or looping link
            logger.debug(f"Could not resolve {path}: {e}")
            real_path = path
            path_exists = False

        declared = name in self.declared
        is_linked = (
            is_symbolic_link
            and path_exists
            and declared
            and is_within(real_path, self.install_root)
        )
        is_missing = (
            declared
            and not path_exists
            and is_within(target_path, self.install_root)
        )

        return GlobalDirectoryEntry(
            name=name,
            path=path,
            is_symbolic_link=is_symbolic_link,
            real_path=real_path,
            path_exists=path_exists,
            target_path=target_path,
            is_linked=is_linked,
            is_missing=is_missing,
        )
