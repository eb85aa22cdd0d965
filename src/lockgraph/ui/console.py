"""Console output formatting utilities for lockgraph."""

from __future__ import annotations

import sys
from typing import Iterable, List, Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
                and component tracing
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_compile_started(self, workflow: str, job_count: int) -> None:
        """Print compilation start information."""
        print("\nCOMPILE STARTED")
        print(f"Workflow: {workflow}")
        print(f"Jobs: {job_count}")
        print()

    def print_order(self, order: List[str]) -> None:
        """Print the topological execution order."""
        for idx, name in enumerate(order, start=1):
            print(f"  {idx}. {name}")

    def print_levels(self, levels: List[List[str]]) -> None:
        """Print parallel execution levels."""
        for idx, level in enumerate(levels, start=1):
            print(f"  Stage {idx}: {', '.join(level)}")

    def print_artifact_file(self, job: str, artifact: str, original: str, resolved: str) -> None:
        """Print where one uploaded file lands after download."""
        print(f"  [{job}] {artifact}: {original} -> {resolved}")

    def print_warning(self, message: str, details: Optional[Iterable[str]] = None) -> None:
        """Print a warning (never fatal)."""
        print(f"WARNING: {message}", file=sys.stderr)
        for detail in details or []:
            print(f"  {detail}", file=sys.stderr)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_success(self, message: str) -> None:
        """Print success message."""
        print(f"STATUS: {message}")

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Optional[Console]) -> None:
    """Set the global console instance (None resets to the default)."""
    global _console
    _console = console
