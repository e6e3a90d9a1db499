"""Console output formatting utilities for smart-docker-build."""

from __future__ import annotations

import sys
from typing import Iterable, Optional

from smartbuild.model import BuildInstruction


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show debug lines and stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_plan_started(
        self,
        repository: str,
        ref: str,
        dockerfile_count: int,
    ) -> None:
        """Print plan start information."""
        print("\nPLAN STARTED")
        print(f"Repository: {repository}")
        print(f"Ref: {ref}")
        print(f"Dockerfiles: {dockerfile_count}")
        print()

    def print_image_selected(self, dockerfile: str, image: str, tags: Iterable[str]) -> None:
        print(f"  ✓ {dockerfile} -> {image} [{', '.join(tags)}]")

    def print_image_skipped(self, dockerfile: str, reason: str) -> None:
        print(f"  ⏭ {dockerfile} (skipped: {reason})")

    def print_instructions(self, instructions: list[BuildInstruction]) -> None:
        """Print final plan summary."""
        print("\n" + "=" * 40)
        print("BUILD PLAN")
        print("=" * 40)
        if not instructions:
            print("  (nothing to build)")
        for ins in instructions:
            print(f"  {ins.reference} <- {ins.dockerfile_path}")

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

    def print_warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

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


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
