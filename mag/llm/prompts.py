"""System prompts that tell the LLM what the active policy permits."""

from typing import Optional

from ..config.templates import ACTION_PROMPT_TEMPLATE, CHAT_PROMPT_TEMPLATE, FILE_ONLY_ADDENDUM
from ..constants import TOOL_FILE, TOOL_BASH, TODO_SEPARATOR
from ..policy.checker import PolicyChecker
from ..policy.settings import Operation
from ..utils.helpers import format_template_string, get_current_context


def describe_policy(policy: Optional[PolicyChecker], chat: bool = False) -> str:
    """Policy constraints section shared by the action and chat prompts."""
    if policy is None:
        return ""

    lines = ["IMPORTANT POLICY CONSTRAINTS:"]
    create_dirs = [d or "(any directory)" for d in policy.get_allowed_directories(TOOL_FILE, Operation.CREATE)]
    if create_dirs:
        lead = "When suggesting file operations, files" if chat else "You"
        verb = "can ONLY be created in" if chat else "can ONLY create files in these directories:"
        lines.append(f"- {lead} {verb} {', '.join(create_dirs)}")
        lines.append("- If a file is requested elsewhere, suggest an alternative in one of those directories")
    else:
        lines.append("- File creation is currently disabled")

    bash_policy = policy.settings.get_operation_policy(TOOL_BASH, Operation.CREATE)
    if bash_policy is not None:
        if bash_policy.allowed_commands:
            lines.append(f"- Allowed shell commands: {', '.join(bash_policy.allowed_commands)}")
        if bash_policy.blocked_commands:
            lines.append(f"- Blocked shell commands: {', '.join(bash_policy.blocked_commands)}")
    lines.append("- Commands run with working directory persistence between calls")
    return "\n".join(lines) + "\n"


def build_action_prompt(policy: Optional[PolicyChecker] = None, file_only: bool = False) -> str:
    context = get_current_context()
    prompt = format_template_string(
        ACTION_PROMPT_TEMPLATE,
        current_directory=context["current_directory"],
        policy_constraints=describe_policy(policy),
    )
    return prompt + FILE_ONLY_ADDENDUM if file_only else prompt


def build_chat_prompt(policy: Optional[PolicyChecker] = None) -> str:
    context = get_current_context()
    return format_template_string(
        CHAT_PROMPT_TEMPLATE,
        current_time=context["current_time"],
        current_directory=context["current_directory"],
        policy_constraints=describe_policy(policy, chat=True),
        separator=TODO_SEPARATOR,
    )
