"""
Status Reporter reconciling the manifest with the global pool.

Read-only: builds rows and counters from a fresh scan on every call.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..manifest import Manifest
from .directory_scanner import DirectoryScanner, ScanResult


logger = logging.getLogger(__name__)


class StatusScope(Enum):
    """Which names a status report covers."""

    DECLARED_ONLY = "declared"
    ALL_GLOBAL = "global"


@dataclass
class StatusRow:
    """One module in a status report."""

    name: str
    is_symbolic_link: bool
    is_linked: bool
    is_missing: bool = False
    # Only filled for ALL_GLOBAL reports
    real_path: Optional[Path] = None


@dataclass
class StatusReport:
    """Rows plus installed/linked/missing counters."""

    scope: StatusScope
    rows: List[StatusRow] = field(default_factory=list)
    installed: int = 0
    linked: int = 0
    missing: int = 0


class StatusReporter:
    """Composes scanner output, declared dependencies and the linked set."""

    def __init__(
        self,
        manifest: Manifest,
        global_pool: Path,
        scanner: Optional[DirectoryScanner] = None,
        install_root: Optional[Path] = None,
    ):
        """
        Initialize the status reporter.

        Args:
            manifest: Parsed package.json of the install root
            global_pool: Global pool directory to scan
            scanner: Directory scanner; requires ``install_root`` when omitted
            install_root: Kupler's install root
        """
        if scanner is None:
            if install_root is None:
                raise ValueError("install_root is required when no scanner is given")
            scanner = DirectoryScanner(install_root, manifest.names)

        self.manifest = manifest
        self.global_pool = Path(global_pool)
        self.scanner = scanner

    def report(self, scope: StatusScope = StatusScope.DECLARED_ONLY) -> StatusReport:
        """Build a status report for ``scope``."""
        scan = self.scanner.scan(self.global_pool)
        linked = set(scan.linked_names())
        missing = set(scan.missing_names())
        report = StatusReport(scope=scope)

        if scope is StatusScope.ALL_GLOBAL:
            names = scan.names
        else:
            names = self.manifest.names

        for name in names:
            row = self._build_row(name, scan, name in linked, name in missing, scope)

            if self.manifest.declares(name):
                report.installed += 1
            if row.is_linked:
                report.linked += 1
            if row.is_missing:
                report.missing += 1

            report.rows.append(row)

        logger.debug(
            f"Status ({scope.value}): {len(report.rows)} rows, "
            f"{report.installed} installed, {report.linked} linked"
        )
        return report

    @staticmethod
    def _build_row(
        name: str,
        scan: ScanResult,
        is_linked: bool,
        is_missing: bool,
        scope: StatusScope,
    ) -> StatusRow:
        entry = scan.stats.get(name)

        if entry is None:
            return StatusRow(name=name, is_symbolic_link=False, is_linked=False)

        return StatusRow(
            name=name,
            is_symbolic_link=entry.is_symbolic_link,
            is_linked=is_linked,
            is_missing=is_missing,
            real_path=entry.real_path if scope is StatusScope.ALL_GLOBAL else None,
        )
