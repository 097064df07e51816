"""Exception logger for Kupler.

Writes unexpected failures with full stack traces to a timestamped,
PID-suffixed JSON log under the Kupler home directory.
"""

import json
import os
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any


class ExceptionLogger:
    """Process-wide exception log.

    Only faults the CLI cannot categorise are written here; expected
    operation failures are reported to the user instead.
    """

    _instance: Optional["ExceptionLogger"] = None

    def __init__(self, log_file_path: Path):
        self.log_file_path = log_file_path

    @classmethod
    def initialize(cls, log_dir: Path) -> "ExceptionLogger":
        """Initialize the process exception logger (idempotent singleton).

        The log file is created lazily on the first logged exception so a
        successful invocation leaves nothing behind.

        WARNING: Tests should reset cls._instance = None if they need fresh
        instances.

        Args:
            log_dir: Directory to hold error_<timestamp>_<pid>.log files

        Returns:
            Initialized ExceptionLogger instance
        """
        if cls._instance is not None:
            return cls._instance

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        pid = os.getpid()
        instance = cls(Path(log_dir) / f"error_{timestamp}_{pid}.log")
        cls._instance = instance
        return instance

    def log_exception(
        self,
        exception: BaseException,
        context: Optional[Dict[str, Any]] = None,
    ) -> Path:
        """Log an exception with full context.

        Args:
            exception: The exception to log
            context: Additional context data, e.g. the command line

        Returns:
            Path of the log file written to
        """
        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
            "context": context or {},
        }

        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_file_path, "a") as f:
            f.write(json.dumps(log_entry, indent=2))
            f.write("\n---\n")

        return self.log_file_path
