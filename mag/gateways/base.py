"""Interfaces between the orchestration core and its side-effecting collaborators."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..messages import ApplyResult, DryRunResult, GenericCommand, ShellResult, WriteFileCommand


class LLMBackend(ABC):
    """Source of chat replies and structured action proposals.

    Every method may raise CommunicationError; callers surface it as-is and
    do not retry.
    """

    @abstractmethod
    def propose_file_action(self, prompt: str) -> WriteFileCommand:
        """Ask for a single file write that fulfils ``prompt``."""

    @abstractmethod
    def propose_generic_action(self, prompt: str) -> GenericCommand:
        """Ask for either a file write or a shell command that fulfils ``prompt``."""

    @abstractmethod
    def chat(self, prompt: str) -> str:
        """Free-form reply to ``prompt``."""

    @abstractmethod
    def chat_with_history(self, prompt: str, history: List[Dict[str, str]]) -> str:
        """Free-form reply given prior ``{"role", "content"}`` messages."""

    @abstractmethod
    def set_provider(self, name: str) -> None:
        """Switch vendor; raises ValidationError for an unknown name."""

    @abstractmethod
    def get_current_provider(self) -> str:
        pass


class FileGateway(ABC):
    """Performs file writes."""

    @abstractmethod
    def dry_run(self, path: str, content: str) -> DryRunResult:
        pass

    @abstractmethod
    def apply(self, path: str, content: str) -> ApplyResult:
        pass


class ShellGateway(ABC):
    """Runs shell commands, keeping the working directory between calls."""

    @abstractmethod
    def execute(self, command: str, working_directory: Optional[str] = None) -> ShellResult:
        pass

    @property
    @abstractmethod
    def current_directory(self) -> str:
        pass
