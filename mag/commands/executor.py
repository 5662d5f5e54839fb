"""Raw shell execution with working-directory capture."""

import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Tuple

from ..constants import PWD_MARKER, TIMEOUT_EXIT_CODE, DEFAULT_COMMAND_TIMEOUT
from ..utils.logging import logger


@dataclass
class CommandResult:
    """What one ``sh`` run produced, including where it left the working directory."""
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    error_message: str = ""
    working_directory_before: str = ""
    working_directory_after: str = ""

    def __post_init__(self):
        if not self.working_directory_after:
            self.working_directory_after = self.working_directory_before

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.error_message


def build_script(command: str, working_directory: str) -> str:
    """Wrap ``command`` so it runs in ``working_directory`` and reports the final cwd."""
    return (
        f"cd {shlex.quote(working_directory)} || exit 1\n"
        f"{command}\n"
        "__mag_status=$?\n"
        f"printf '\\n{PWD_MARKER}%s\\n' \"$(pwd)\"\n"
        "exit $__mag_status\n"
    )


def split_pwd_marker(stdout: str) -> Tuple[str, str]:
    """Separate command output from the trailing working-directory marker.

    Returns:
        (output, final_directory); final_directory is "" when no marker was printed
    """
    output, found, tail = stdout.rpartition(PWD_MARKER)
    if not found:
        return stdout, ""
    directory = tail.split("\n", 1)[0]
    if output.endswith("\n"):
        output = output[:-1]
    return output, directory


class CommandExecutor:
    """Runs one command per ``sh`` process; nothing carries over between calls."""

    def __init__(self, default_timeout: int = DEFAULT_COMMAND_TIMEOUT):
        self.default_timeout = default_timeout

    def execute(self, command: str,
                working_directory: Optional[str] = None,
                timeout: Optional[int] = None) -> CommandResult:
        """Run ``command`` starting in ``working_directory``.

        Args:
            command: Shell command line
            working_directory: Starting directory (default: process cwd)
            timeout: Seconds before the process is killed (default: executor's)

        Returns:
            CommandResult; a timeout gives exit code 124, a spawn failure -1
        """
        timeout = timeout or self.default_timeout
        before = working_directory or os.getcwd()
        logger.debug(f"sh ({timeout}s) in {before}: {command}")

        try:
            process = subprocess.run(
                build_script(command, before),
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            message = f"Command timed out after {timeout} seconds"
            logger.warning(message)
            return CommandResult(command, TIMEOUT_EXIT_CODE, error_message=message,
                                 working_directory_before=before)
        except OSError as e:
            message = f"Could not start shell: {e}"
            logger.error(message)
            return CommandResult(command, -1, error_message=message, working_directory_before=before)

        stdout, after = split_pwd_marker(process.stdout)
        logger.debug(f"'{command}' exited with {process.returncode}")
        return CommandResult(
            command=command,
            exit_code=process.returncode,
            stdout=stdout,
            stderr=process.stderr,
            working_directory_before=before,
            working_directory_after=after,
        )


def create_command_executor(timeout: int = DEFAULT_COMMAND_TIMEOUT) -> CommandExecutor:
    return CommandExecutor(timeout)
