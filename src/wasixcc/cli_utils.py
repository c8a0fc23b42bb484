"""CLI utility functions for wasixcc.

This module provides common utilities used by the command-line entry points:
- Logging setup
- Tool command detection from the executable name
- Error formatting
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .errors import WasixccError

LOG_LEVEL_ENV = "WASIXCC_LOG"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

HANDLER_NAME = "wasixcc-console"


class CommandNameError(WasixccError):
    """Raised when the executable name does not map to a tool command."""

    pass


def setup_logging(level_name: Optional[str] = None) -> None:
    """Setup logging to stderr.

    Args:
        level_name: Level name (e.g. 'info'); defaults to WASIXCC_LOG, then WARNING
    """
    if level_name is None:
        level_name = os.environ.get(LOG_LEVEL_ENV, "")

    level = logging.getLevelName(level_name.strip().upper()) if level_name.strip() else None
    if not isinstance(level, int):
        level = logging.WARNING

    logger = logging.getLogger()
    logger.setLevel(level)

    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            handler.setLevel(level)
            return

    # Stdout belongs to the wrapped tools
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(HANDLER_NAME)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)


def debug_enabled() -> bool:
    """Whether the root logger emits debug records (WASIXCC_LOG=debug)."""
    return logging.getLogger().isEnabledFor(logging.DEBUG)


def get_command_name(executable: str) -> str:
    """Get the tool command from an executable path.

    'wasix-cc' and 'wasixcc' both map to 'cc'.

    Raises:
        CommandNameError: If the name has no 'wasix' prefix
    """
    exe_name = Path(executable).name
    if exe_name.startswith("wasix-"):
        return exe_name[len("wasix-") :]
    if exe_name.startswith("wasix"):
        return exe_name[len("wasix") :]
    raise CommandNameError(
        "Failed to get command name; this binary must be run with a name in "
        "the form 'wasix-<command-name>' or 'wasix<command-name>', such as "
        f"wasix-cc; given {exe_name}"
    )


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message to stderr.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        print(message, file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        """Print formatted success message."""
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message to stderr."""
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def handle_wasixcc_error(error: WasixccError) -> None:
        """Handle a WasixccError with standard formatting and exit 1."""
        ErrorFormatter.print_error(f"Error: {type(error).__name__}", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print the traceback; the CLI passes debug_enabled()
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)
