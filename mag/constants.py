"""Constants used throughout the mag package."""

from pathlib import Path
from colorama import Fore, Style

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "mag"

# Policy document lives beside the project being worked on
POLICY_DIR_NAME = ".mag"
POLICY_FILE_NAME = "policy.json"
POLICY_VERSION = "1.0"

# ANSI Color Codes (using colorama)
CLR_RESET = Style.RESET_ALL
CLR_RED = Fore.RED
CLR_BOLD_RED = Style.BRIGHT + Fore.RED
CLR_GREEN = Fore.GREEN
CLR_BOLD_GREEN = Style.BRIGHT + Fore.GREEN
CLR_YELLOW = Fore.YELLOW
CLR_BOLD_YELLOW = Style.BRIGHT + Fore.YELLOW
CLR_BLUE = Fore.BLUE
CLR_BOLD_BLUE = Style.BRIGHT + Fore.BLUE
CLR_MAGENTA = Fore.MAGENTA
CLR_BOLD_MAGENTA = Style.BRIGHT + Fore.MAGENTA
CLR_CYAN = Fore.CYAN
CLR_BOLD_CYAN = Style.BRIGHT + Fore.CYAN
CLR_WHITE = Fore.WHITE
CLR_BOLD_WHITE = Style.BRIGHT + Fore.WHITE

# Logical tools known to the policy engine
TOOL_FILE = "file_tool"
TOOL_BASH = "bash_tool"
TOOL_TODO = "todo_tool"

# LLM providers
DEFAULT_PROVIDER = "anthropic"
PROVIDER_ALIASES = {
    "claude": "anthropic",
    "chatgpt": "openai",
}

# Default configuration values
DEFAULT_COMMAND_TIMEOUT = 30
DEFAULT_LLM_TIMEOUT = 60
DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_ENABLE_DEBUG = False
DEFAULT_RESOLVE_COMMANDS_WITH_LLM = True

# Exit code reported when a shell command exceeds its timeout
TIMEOUT_EXIT_CODE = 124

BYTES_PER_MB = 1024 * 1024
MAX_FILE_SIZE_MB_LIMIT = 1000

# Words that mark a task as a shell task rather than a file task
SHELL_KEYWORDS = [
    "run", "execute", "build", "compile", "make", "cmake", "npm", "yarn",
    "pip", "install", "test", "cd ", "ls", "pwd", "mkdir", "chmod", "grep",
    "find", "git ", "docker", "curl", "wget", "tar", "unzip", "export",
]

# Script used when a task asks to run "the script" without naming one
FALLBACK_SCRIPT = "src/script.py"

# Separator line delimiting block-style todos in chat replies
TODO_SEPARATOR = "<TODO_SEPARATOR>"

# Marker the shell gateway prints to recover the final working directory
PWD_MARKER = "__MAG_PWD__"

# Denied by the policy engine whatever the configured command lists say
HARD_BLOCKED_COMMANDS = [
    "rm -rf /",
    "rm -fr /",
    ":(){ :|:& };:",
    "mkfs",
    "dd if=/dev/zero",
    "dd if=/dev/random",
]
