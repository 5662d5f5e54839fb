"""Colored, level-tagged console output shared by every mag component."""

import sys
import datetime
import threading
from typing import List, TextIO

from ..constants import (
    CLR_RESET, CLR_CYAN, CLR_BOLD_CYAN, CLR_GREEN, CLR_BOLD_GREEN,
    CLR_MAGENTA, CLR_BOLD_MAGENTA, CLR_BLUE, CLR_BOLD_BLUE,
    CLR_YELLOW, CLR_BOLD_YELLOW, CLR_WHITE, CLR_BOLD_WHITE,
    CLR_RED, CLR_BOLD_RED
)

# level -> (header color, body color)
LEVEL_COLORS = {
    "System": (CLR_CYAN, CLR_BOLD_CYAN),
    "User": (CLR_GREEN, CLR_BOLD_GREEN),
    "Todo": (CLR_MAGENTA, CLR_BOLD_MAGENTA),
    "Execute": (CLR_BLUE, CLR_BOLD_BLUE),
    "Policy": (CLR_RED, CLR_BOLD_RED),
    "Approval": (CLR_YELLOW, CLR_BOLD_YELLOW),
    "LLM": (CLR_WHITE, CLR_BOLD_WHITE),
    "Command": (CLR_YELLOW, CLR_BOLD_YELLOW),
    "Error": (CLR_RED, CLR_BOLD_RED),
    "Warning": (CLR_YELLOW, CLR_BOLD_YELLOW),
    "Debug": (CLR_WHITE, CLR_BOLD_WHITE),
}

STDERR_LEVELS = ("Error", "Warning")


class Logger:
    """Level logger for the interactive session and the batch worker.

    Every record is ``[timestamp] [Level]: first line`` with continuation
    lines indented under the first. Error and Warning records go to stderr.
    """

    def __init__(self, debug_enabled: bool = False):
        self.debug_enabled = debug_enabled
        # The execution worker and the prompt loop write concurrently
        self._lock = threading.Lock()

    def set_debug(self, enabled: bool) -> None:
        self.debug_enabled = enabled

    @staticmethod
    def timestamp() -> str:
        return datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    def format_record(self, level: str, message: str) -> List[str]:
        """Render one record as colored output lines."""
        header_color, body_color = LEVEL_COLORS.get(level, (CLR_WHITE, CLR_BOLD_WHITE))
        prefix = f"[{self.timestamp()}] [{level}]: "
        lines = message.splitlines() or [""]
        rendered = [f"{header_color}{prefix}{CLR_RESET}{body_color}{lines[0]}{CLR_RESET}"]
        padding = " " * len(prefix)
        rendered.extend(f"{padding}{body_color}{line}{CLR_RESET}" for line in lines[1:])
        return rendered

    def log_message(self, level: str, message: str) -> None:
        if level == "Debug" and not self.debug_enabled:
            return
        stream: TextIO = sys.stderr if level in STDERR_LEVELS else sys.stdout
        text = "\n".join(self.format_record(level, message)) + "\n"
        with self._lock:
            stream.write(text)
            stream.flush()

    def system(self, message: str) -> None:
        self.log_message("System", message)

    def user(self, message: str) -> None:
        self.log_message("User", message)

    def todo(self, message: str) -> None:
        """Todo store changes and rendered lists."""
        self.log_message("Todo", message)

    def execute(self, message: str) -> None:
        """Batch and single-task progress."""
        self.log_message("Execute", message)

    def policy(self, message: str) -> None:
        """Denials from the policy engine."""
        self.log_message("Policy", message)

    def approval(self, message: str) -> None:
        """Approval requests the LLM raised mid-reply."""
        self.log_message("Approval", message)

    def llm(self, message: str) -> None:
        self.log_message("LLM", message)

    def command(self, message: str) -> None:
        """Output captured from a shell command."""
        self.log_message("Command", message)

    def error(self, message: str) -> None:
        self.log_message("Error", message)

    def warning(self, message: str) -> None:
        self.log_message("Warning", message)

    def debug(self, message: str) -> None:
        self.log_message("Debug", message)


# Shared instance; the application turns debug on from flags or config
logger = Logger()
