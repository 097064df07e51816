"""
Result types shared by every link/status operation.

Operations never raise across the engine boundary for expected failures;
they return an OperationResult carrying an ErrorKind instead.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Categories of expected operation failures."""

    MODULE_UNDEFINED = "ModuleUndefined"
    MODULE_NOT_INSTALLED = "ModuleNotInstalled"
    NOT_LINKED = "NotLinkedError"
    SELF_OPERATION_PROHIBITED = "SelfOperationProhibited"
    FILESYSTEM_ERROR = "FilesystemError"
    # Recovered inside the config layer, never returned to callers
    CONFIG_PARSE_ERROR = "ConfigParseError"
    DELEGATE_FAILED = "DelegateFailed"
    POOL_UNAVAILABLE = "PoolUnavailable"


@dataclass
class OperationResult:
    """Outcome of a link engine operation or delegated command."""

    success: bool
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    error: Optional[BaseException] = None
    warnings: List[str] = field(default_factory=list)
    returncode: Optional[int] = None

    @classmethod
    def ok(
        cls,
        message: str = "",
        warnings: Optional[List[str]] = None,
        returncode: Optional[int] = None,
    ) -> "OperationResult":
        return cls(
            success=True,
            message=message,
            warnings=list(warnings or []),
            returncode=returncode,
        )

    @classmethod
    def fail(
        cls,
        error_kind: ErrorKind,
        message: str,
        error: Optional[BaseException] = None,
        warnings: Optional[List[str]] = None,
        returncode: Optional[int] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            message=message,
            error_kind=error_kind,
            error=error,
            warnings=list(warnings or []),
            returncode=returncode,
        )
