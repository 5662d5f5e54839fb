"""In-process tool gateways: direct file writes and a persistent-cwd shell."""

import os
import shutil
from pathlib import Path
from typing import Callable, Optional

from ..commands.executor import CommandExecutor, create_command_executor
from ..commands.safety import CommandSafetyChecker, create_safety_checker
from ..constants import DEFAULT_COMMAND_TIMEOUT
from ..messages import ApplyResult, DryRunResult, ExecutionContext, ShellResult
from ..utils.logging import logger
from .base import FileGateway, ShellGateway


class LocalFileGateway(FileGateway):
    """Writes files on the local filesystem."""

    def __init__(self, backup_enabled: Optional[Callable[[], bool]] = None):
        """Initialize the file gateway.

        Args:
            backup_enabled: Called before each overwrite; a true result copies
                the old file to ``<path>.bak`` first
        """
        self._backup_enabled = backup_enabled or (lambda: False)

    def dry_run(self, path: str, content: str) -> DryRunResult:
        size = len(content.encode("utf-8"))
        try:
            target = Path(path)
            if target.exists() and not target.is_file():
                return DryRunResult(
                    description="",
                    success=False,
                    error_message=f"'{path}' exists and is not a regular file",
                )
            verb = "overwrite existing" if target.exists() else "create new"
            return DryRunResult(description=f"[DRY-RUN] Will {verb} file '{path}' with {size} bytes.")
        except OSError as e:
            return DryRunResult(description="", success=False, error_message=str(e))

    def apply(self, path: str, content: str) -> ApplyResult:
        size = len(content.encode("utf-8"))
        before = os.getcwd()
        result = ApplyResult(description="")

        try:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.exists() and self._backup_enabled():
                backup = target.with_name(target.name + ".bak")
                shutil.copy2(target, backup)
                logger.debug(f"Backed up {target} to {backup}")
            target.write_text(content, encoding="utf-8")
            result.description = f"[APPLIED] Successfully wrote {size} bytes to '{path}'."
        except OSError as e:
            result.success = False
            result.error_message = f"Failed to write '{path}': {e}"
            logger.error(result.error_message)

        result.execution_context = ExecutionContext(
            working_directory_before=before,
            working_directory_after=os.getcwd(),
            command_output=f"Created file: {path} ({size} bytes)" if result.success else "",
            exit_code=0 if result.success else 1,
        )
        return result


class LocalShellGateway(ShellGateway):
    """Runs commands through :class:`CommandExecutor`.

    A ``cd`` in one call carries over to the next call.
    """

    def __init__(self,
                 executor: Optional[CommandExecutor] = None,
                 safety_checker: Optional[CommandSafetyChecker] = None,
                 working_directory: Optional[str] = None):
        self.executor = executor or create_command_executor()
        self.safety_checker = safety_checker or create_safety_checker()
        self._cwd = working_directory or os.getcwd()

    @property
    def current_directory(self) -> str:
        return self._cwd

    def execute(self, command: str, working_directory: Optional[str] = None) -> ShellResult:
        start_dir = working_directory or self._cwd

        is_safe, reasons = self.safety_checker.check_command_safety(command)
        if not is_safe:
            return ShellResult(
                command=command,
                success=False,
                exit_code=-1,
                working_directory_before=start_dir,
                working_directory_after=start_dir,
                error_message=f"Command blocked by security policy: {command} ({reasons[0]})",
            )
        for warning in reasons:
            logger.warning(warning)

        result = self.executor.execute(command, working_directory=start_dir)
        if result.working_directory_after and os.path.isdir(result.working_directory_after):
            self._cwd = result.working_directory_after

        return ShellResult(
            command=command,
            success=result.success,
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            working_directory_before=result.working_directory_before,
            working_directory_after=result.working_directory_after,
            error_message=result.error_message,
        )


def create_local_gateways(command_timeout: int = DEFAULT_COMMAND_TIMEOUT,
                          backup_enabled: Optional[Callable[[], bool]] = None):
    """Build the production file and shell gateways.

    Returns:
        Tuple of (file_gateway, shell_gateway)
    """
    file_gateway = LocalFileGateway(backup_enabled)
    shell_gateway = LocalShellGateway(create_command_executor(command_timeout))
    return file_gateway, shell_gateway
