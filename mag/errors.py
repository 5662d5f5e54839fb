"""Exception types raised by mag."""


class MagError(Exception):
    """Base class for all mag errors."""


class PolicyViolation(MagError):
    """A path or command was denied by the active policy."""

    def __init__(self, message: str, tool: str = "", target: str = ""):
        super().__init__(message)
        self.tool = tool
        self.target = target


class ValidationError(MagError, ValueError):
    """Malformed input rejected at a component boundary."""


class CommunicationError(MagError):
    """An LLM backend or tool gateway failed or returned malformed data."""


class ConfigurationError(MagError):
    """Configuration on disk is unusable; the process must not continue."""


class TaskExecutionError(MagError):
    """A dispatched task did not complete successfully."""

    def __init__(self, message: str, exit_code: int = -1):
        super().__init__(message)
        self.exit_code = exit_code
