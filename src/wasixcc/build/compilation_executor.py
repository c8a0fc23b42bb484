"""Command Executor.

This module runs the synthesized tool invocations.

Design:
    - Wraps subprocess.run; the tool shares our stdin/stdout/stderr
    - Any launch failure or nonzero exit raises CommandError
    - No retries; the caller stops the pipeline on the first failure
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Sequence, Union

from ..errors import WasixccError


class CommandError(WasixccError):
    """Raised when a tool cannot be launched or exits with an error."""

    pass


def format_command(cmd: Sequence[Union[str, Path]]) -> str:
    """Format a command for messages, quoting where needed."""
    return " ".join(shlex.quote(str(part)) for part in cmd)


class CommandExecutor:
    """Runs tool commands synchronously."""

    def run(self, cmd: Sequence[Union[str, Path]]) -> None:
        """Run a command to completion.

        Args:
            cmd: Program followed by its arguments

        Raises:
            CommandError: If the command fails to start or exits nonzero
        """
        argv: List[str] = [str(part) for part in cmd]
        logging.debug(f"Executing build command: {format_command(argv)}")

        try:
            result = subprocess.run(argv)
        except OSError as e:
            raise CommandError(f"Failed to run command: {format_command(argv)}: {e}") from e

        if result.returncode != 0:
            raise CommandError(
                f"Command failed with status: {result.returncode}; "
                f"the command was: {format_command(argv)}"
            )
