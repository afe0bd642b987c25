"""
Subprocess-backed command runner
"""
import shlex
import subprocess
from typing import Optional, Sequence

from ...core.exceptions import ExternalCommandError
from ...core.interfaces import CommandResult, CommandRunner
from ...core.logging import get_logger

logger = get_logger(__name__)


class SubprocessRunner(CommandRunner):
    """
    Runs commands with subprocess.run.

    No timeout is applied: rebuilds and network bring-up block until the
    external tool returns.
    """

    def run(
        self,
        args: Sequence[str],
        capture: bool = True,
        merge_stderr: bool = False,
        input_text: Optional[str] = None,
    ) -> CommandResult:
        argv = [str(a) for a in args]
        logger.debug(f"$ {shlex.join(argv)}")

        if capture:
            stdout = subprocess.PIPE
            stderr = subprocess.STDOUT if merge_stderr else subprocess.PIPE
        else:
            stdout = stderr = None

        try:
            result = subprocess.run(
                argv,
                input=input_text,
                stdout=stdout,
                stderr=stderr,
                text=True,
            )
        except FileNotFoundError as e:
            raise ExternalCommandError(f"Command not found: {argv[0]}", args=argv) from e
        except PermissionError as e:
            raise ExternalCommandError(f"Command not executable: {argv[0]}", args=argv) from e

        logger.debug(f"exit code {result.returncode}: {argv[0]}")
        return CommandResult(
            args=argv,
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
