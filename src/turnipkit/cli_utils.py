"""CLI utility functions for turnipkit.

This module provides common utilities used across CLI commands including:
- Error and result formatting
- Path validation for command arguments
"""

import sys
from pathlib import Path
from typing import List

from .pipeline import ExitCode, PipelineResult


class ErrorFormatter:
    """Formats and displays messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed [compile]")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}! {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_result(result: PipelineResult) -> None:
        """Print a pipeline result: bundle paths on success, a stage-labeled error otherwise."""
        if result.success:
            ErrorFormatter.print_success(result.message)
            print()
            print("Your drivers are ready:")
            for bundle in result.bundles:
                print(f"  {bundle}")
            return

        ErrorFormatter.print_error(f"Failed at stage: {result.stage}", result.message)
        if result.logs:
            print("Logs kept for inspection:")
            for log in result.logs:
                print(f"  {log}")

    @staticmethod
    def handle_keyboard_interrupt(work_dir: Path) -> None:
        """Report an interrupted run and exit with the SIGINT status."""
        ErrorFormatter.print_warning(f"Interrupted; working directory left in place: {work_dir}")
        sys.exit(ExitCode.INTERRUPTED)

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates paths given on the command line."""

    @staticmethod
    def validate_dir(path: Path, label: str) -> None:
        """Exit with status 2 unless path is an existing directory."""
        if not path.exists():
            print(f"{ErrorFormatter.RED}✗ Error: {label} does not exist: {path}{ErrorFormatter.RESET}")
            sys.exit(ExitCode.PRECONDITION)
        if not path.is_dir():
            print(f"{ErrorFormatter.RED}✗ Error: {label} is not a directory: {path}{ErrorFormatter.RESET}")
            sys.exit(ExitCode.PRECONDITION)

    @staticmethod
    def validate_file(path: Path, label: str) -> None:
        """Exit with status 2 unless path is an existing file."""
        if not path.is_file():
            print(f"{ErrorFormatter.RED}✗ Error: {label} is not a file: {path}{ErrorFormatter.RESET}")
            sys.exit(ExitCode.PRECONDITION)


def format_missing(tools: List[str]) -> str:
    return "\n".join(f"  - {tool} not found" for tool in tools)
