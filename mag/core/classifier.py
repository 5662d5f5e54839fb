"""Task classification: file task or shell task, and best-effort shell command extraction."""

import re
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..constants import SHELL_KEYWORDS, FALLBACK_SCRIPT


QUOTES = "\"'`"


class TaskKind(Enum):
    FILE = "file"
    SHELL = "shell"


def classify(prompt_text: str) -> TaskKind:
    """SHELL if the text mentions any shell keyword, otherwise FILE."""
    lowered = prompt_text.lower()
    if any(keyword in lowered for keyword in SHELL_KEYWORDS):
        return TaskKind.SHELL
    return TaskKind.FILE


# Each rule gets (stripped text, lower-cased text) and returns a command or None.
# Rules are tried in order; the first hit wins.

def _explicit_python(text: str, lowered: str) -> Optional[str]:
    # Only a real invocation: a .py file or a -m module, never "python script"
    match = re.search(r"\bpython3?\s+(?:-m\s+\S+|\S+\.py\b)", text, re.IGNORECASE)
    return match.group(0) if match else None


def _python_script(text: str, lowered: str) -> Optional[str]:
    if "python" not in lowered and "script" not in lowered:
        return None
    match = re.search(r"(\S+\.py)\b", text)
    if match:
        return f"python3 {match.group(1).strip(QUOTES)}"
    return f"python3 {FALLBACK_SCRIPT}"


def _run_prefix(text: str, lowered: str) -> Optional[str]:
    index = lowered.find("run ")
    if index == -1:
        return None
    return text[index + 4:].strip() or None


def _execute_prefix(text: str, lowered: str) -> Optional[str]:
    index = lowered.find("execute ")
    if index == -1:
        return None
    rest = text[index + 8:].strip()
    if "python" in rest.lower() or "script" in rest.lower():
        return f"python3 {FALLBACK_SCRIPT}"
    return rest or None


def _keyword(keyword: str, command: str) -> Callable[[str, str], Optional[str]]:
    def rule(text: str, lowered: str) -> Optional[str]:
        return command if keyword in lowered else None
    rule.__name__ = f"_keyword_{keyword.replace(' ', '_')}"
    return rule


def _git(text: str, lowered: str) -> Optional[str]:
    index = lowered.find("git ")
    return text[index:].strip() if index != -1 else None


EXTRACTION_RULES: List[Tuple[str, Callable[[str, str], Optional[str]]]] = [
    ("explicit python invocation", _explicit_python),
    ("python script file", _python_script),
    ("run prefix", _run_prefix),
    ("execute prefix", _execute_prefix),
    ("make", _keyword("make", "make")),
    ("build", _keyword("build", "make")),
    ("test", _keyword("test", "make test")),
    ("npm install", _keyword("npm install", "npm install")),
    ("git", _git),
]


def extract_shell_command(prompt_text: str) -> str:
    """Guess the shell command a task describes.

    This is a lossy heuristic. When no rule matches, the whole text is
    returned as the command.
    """
    text = prompt_text.strip()
    lowered = text.lower()
    for _, rule in EXTRACTION_RULES:
        command = rule(text, lowered)
        if command:
            return command
    return text
