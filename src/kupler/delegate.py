"""
Delegation of package manager commands.

Kupler never parses what npm or yarn print; a delegated command succeeds
exactly when the package manager exits with status 0.
"""

import logging
from pathlib import Path
from typing import List, Sequence

from .results import ErrorKind, OperationResult
from .utils.process_runner import run_package_manager

logger = logging.getLogger(__name__)


class PackageManagerDelegate:
    """Runs package manager subcommands and adapts them to OperationResult."""

    def __init__(self, executable: str = "npm"):
        self.executable = executable

    @property
    def uses_yarn(self) -> bool:
        return self.executable == "yarn"

    def run(
        self, subcommand: str, args: Sequence[str], cwd: Path
    ) -> OperationResult:
        """
        Run ``<executable> <subcommand> <args...>`` in ``cwd``.

        Returns:
            Success on exit status 0, otherwise a DelegateFailed result
        """
        argv: List[str] = [subcommand, *args]
        command = f"{self.executable} {' '.join(argv)}"

        try:
            completed = run_package_manager(self.executable, argv, cwd)
        except OSError as e:
            logger.error(f"Failed to start {command}: {e}")
            return OperationResult.fail(
                ErrorKind.DELEGATE_FAILED, f"could not run `{command}`: {e}", error=e
            )

        if completed.returncode != 0:
            return OperationResult.fail(
                ErrorKind.DELEGATE_FAILED,
                f"`{command}` exited with status {completed.returncode}",
                returncode=completed.returncode,
            )

        return OperationResult.ok(returncode=completed.returncode)

    def install(self, args: Sequence[str], cwd: Path) -> OperationResult:
        # yarn installs named packages with `add`
        subcommand = "add" if self.uses_yarn and args else "install"
        return self.run(subcommand, args, cwd)

    def uninstall(self, args: Sequence[str], cwd: Path) -> OperationResult:
        subcommand = "remove" if self.uses_yarn else "uninstall"
        return self.run(subcommand, args, cwd)

    def upgrade(self, args: Sequence[str], cwd: Path) -> OperationResult:
        """
        Upgrade the install root's dependencies.

        yarn: ``yarn upgrade-interactive``. npm: ``npm-check-updates -u``
        rewrites package.json, then ``npm install`` applies it.
        """
        if self.uses_yarn:
            return self.run("upgrade-interactive", args, cwd)

        ncu_args = list(args)
        if not any(arg in ("-u", "--upgrade") for arg in ncu_args):
            ncu_args.append("-u")

        result = self.run("exec", ["--yes", "--", "npm-check-updates", *ncu_args], cwd)
        if not result.success:
            return result
        return self.run("install", [], cwd)
