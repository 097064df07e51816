"""
Link and alias reconciliation for globally published node modules.

Scans the global pool, publishes modules from Kupler's install root and
links them into projects under remembered aliases.
"""

from ..results import ErrorKind, OperationResult
from .directory_scanner import DirectoryScanner, GlobalDirectoryEntry, ScanResult
from .alias_store import AliasStore
from .link_engine import LinkEngine, PublishState, UseState
from .status_reporter import StatusReporter, StatusReport, StatusRow, StatusScope

__all__ = [
    "AliasStore",
    "DirectoryScanner",
    "ErrorKind",
    "GlobalDirectoryEntry",
    "LinkEngine",
    "OperationResult",
    "PublishState",
    "ScanResult",
    "StatusReport",
    "StatusReporter",
    "StatusRow",
    "StatusScope",
    "UseState",
]
