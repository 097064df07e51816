"""
CLI Error Display for Kupler operations.

Renders failed OperationResults with rich: the error kind and message,
warnings, optional technical details, and context-specific next steps.
"""

import logging
import traceback
from typing import List, Optional

from rich.console import Console
from rich.text import Text

from .results import ErrorKind, OperationResult

logger = logging.getLogger(__name__)


class CLIErrorDisplay:
    """User-facing rendering of operation results and warnings."""

    def __init__(self, console: Optional[Console] = None, app_name: str = "kupler"):
        self.console = console or Console(stderr=True)
        self.app_name = app_name

    def display_warnings(self, warnings: List[str]) -> None:
        for warning in warnings:
            warning_text = Text()
            warning_text.append("⚠️  ", style="yellow")
            warning_text.append(warning, style="yellow")
            self.console.print(warning_text)

    def display_error(
        self,
        result: OperationResult,
        command: Optional[str] = None,
        module_name: Optional[str] = None,
        show_technical_details: bool = False,
    ) -> None:
        """
        Display a failed operation result.

        Args:
            result: The failed result
            command: Command that produced it, used for next-step hints
            module_name: Module the command was run for
            show_technical_details: Print the underlying exception's traceback
        """
        self.display_warnings(result.warnings)

        kind = result.error_kind.value if result.error_kind else "Error"
        error_text = Text()
        error_text.append("❌ ", style="red")
        error_text.append(f"{kind}: ", style="red bold")
        error_text.append(result.message, style="red")
        self.console.print(error_text)

        if show_technical_details and result.error is not None:
            self._display_technical_details(result.error)

        next_steps = self._generate_next_steps(result, command, module_name)
        for step in next_steps:
            step_text = Text()
            step_text.append("   → ", style="blue")
            step_text.append(step, style="white")
            self.console.print(step_text)

    def display_unexpected(
        self, error: BaseException, show_technical_details: bool = False
    ) -> None:
        self.console.print(
            f"❌ Unexpected error: {type(error).__name__}: {error}",
            style="red",
            markup=False,
        )
        if show_technical_details:
            self._display_technical_details(error)

    def _display_technical_details(self, error: BaseException) -> None:
        trace = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        self.console.print()
        self.console.print("Technical Details:", style="dim")
        self.console.print(trace.rstrip(), style="dim red", markup=False)

    def _generate_next_steps(
        self,
        result: OperationResult,
        command: Optional[str],
        module_name: Optional[str],
    ) -> List[str]:
        """Generate context-specific next steps."""
        app = self.app_name
        name = module_name or "<module>"

        if result.error_kind == ErrorKind.MODULE_NOT_INSTALLED:
            return [f"Install it first: {app} install {name}"]

        if result.error_kind == ErrorKind.NOT_LINKED:
            return [
                f"Publish it first: {app} link {name}",
                f"Check what is linked: {app} status",
            ]

        if result.error_kind == ErrorKind.POOL_UNAVAILABLE:
            return [
                "Check that npm (or yarn) is on your PATH",
                "Or set 'globalDir' in the kupler config to the global modules directory",
            ]

        if result.error_kind == ErrorKind.FILESYSTEM_ERROR and command in (
            "use",
            "link",
        ):
            return [f"Inspect existing links with: {app} status --global"]

        return []
