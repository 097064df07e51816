"""
Package manager command runner.

Runs npm/yarn with inherited standard streams for delegated commands, and
with captured output for the few queries Kupler makes itself (global root
and prefix).
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def resolve_executable(executable: str) -> str:
    """
    Resolve the package manager executable on PATH.

    On Windows npm and yarn are ``.cmd`` shims that subprocess cannot start
    by bare name, so the full path from ``shutil.which`` is used when found.
    """
    return shutil.which(executable) or executable


def run_package_manager(
    executable: str,
    args: List[str],
    cwd: Path,
) -> subprocess.CompletedProcess:
    """
    Run a package manager command, inheriting stdin/stdout/stderr.

    Args:
        executable: "npm" or "yarn"
        args: Subcommand followed by passthrough arguments
        cwd: Working directory for the command

    Returns:
        CompletedProcess; only its returncode is meaningful

    Raises:
        FileNotFoundError: If the executable or cwd does not exist
    """
    cmd = [resolve_executable(executable), *args]

    logger.debug(f"Running {' '.join(cmd)} in {cwd}")
    return subprocess.run(cmd, cwd=str(cwd), check=False)


def query_package_manager(
    executable: str, args: List[str], cwd: Optional[Path] = None
) -> Optional[str]:
    """
    Run a package manager query and return its trimmed stdout.

    Returns:
        The output, or None if the command failed or could not be started
    """
    cmd = [resolve_executable(executable), *args]

    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.warning(f"Could not run {' '.join(cmd)}: {e}")
        return None

    if result.returncode != 0:
        logger.warning(
            f"{' '.join(cmd)} exited with {result.returncode}: {result.stderr.strip()}"
        )
        return None

    output = result.stdout.strip()
    return output or None
