"""Directive parser: applies todo commands embedded in LLM chat replies.

A reply is scanned once into literal text and directive spans. Directives
are then applied phase by phase in a fixed order (adds, blocks, list,
completes, deletes, execute-next, execute-all, execute-by-id, approval
requests) and each span is replaced by a short confirmation. Replacement
text is never rescanned, so running the parser over its own output changes
nothing.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from ..constants import TODO_SEPARATOR
from ..errors import ValidationError
from ..todos.manager import TodoManager
from ..utils.logging import logger
from .controller import ExecutionController


class DirectiveKind(Enum):
    ADD = "add"
    BLOCK = "block"
    LIST = "list"
    COMPLETE = "complete"
    DELETE = "delete"
    EXECUTE_NEXT = "execute_next"
    EXECUTE_ALL = "execute_all"
    EXECUTE_TODO = "execute_todo"
    APPROVAL = "approval"


PHASE_ORDER = list(DirectiveKind)

_SEP = re.escape(TODO_SEPARATOR)

DIRECTIVE_PATTERNS = {
    DirectiveKind.BLOCK: rf"{_SEP}[^\n]*\n(?P<block_body>.*?)\n[ \t]*{_SEP}",
    DirectiveKind.ADD: (r"add_todo\s*\(\s*(?P<add_q1>['\"])(?P<add_title>[^\n]*?)(?P=add_q1)"
                        r"\s*,\s*(?P<add_q2>['\"])(?P<add_desc>[^\n]*?)(?P=add_q2)\s*\)"),
    DirectiveKind.LIST: r"list_todos\s*\(\s*\)",
    DirectiveKind.COMPLETE: r"mark_complete\s*\(\s*(?P<complete_id>\d+)\s*\)",
    DirectiveKind.DELETE: r"delete_todo\s*\(\s*(?P<delete_id>\d+)\s*\)",
    DirectiveKind.EXECUTE_NEXT: r"execute_next\s*\(\s*\)",
    DirectiveKind.EXECUTE_ALL: r"execute_all\s*\(\s*\)",
    DirectiveKind.EXECUTE_TODO: r"execute_todo\s*\(\s*(?P<execute_id>\d+)\s*\)",
    DirectiveKind.APPROVAL: (r"request_user_approval\s*\(\s*(?P<approval_q>['\"])"
                             r"(?P<approval_reason>[^\n]*?)(?P=approval_q)\s*\)"),
}

DIRECTIVE_REGEX = re.compile(
    "|".join(f"(?P<{kind.value}>{pattern})" for kind, pattern in DIRECTIVE_PATTERNS.items()),
    re.DOTALL,
)

_BLOCK_TITLE = re.compile(r"Title:[ \t]*(?P<title>[^\n]*)")
_BLOCK_DESCRIPTION = re.compile(r"Description:(?P<description>.*)", re.DOTALL)

# Names of the call-style directives, used to defuse echoed text
CALL_DIRECTIVE_NAMES = ["add_todo", "list_todos", "mark_complete", "delete_todo",
                        "execute_next", "execute_all", "execute_todo", "request_user_approval"]

_CALL_TOKEN = re.compile(rf"({'|'.join(CALL_DIRECTIVE_NAMES)})(?=\s*\()")
ZERO_WIDTH_SPACE = "\u200b"

APPROVAL_MESSAGE = ("**⏸️  Requesting User Approval:** {reason}\n\n"
                    "I've paused here to get your approval. Please review the pending todos "
                    "and use /do commands when you're ready to proceed.")


@dataclass
class Directive:
    """One directive found in the reply."""
    kind: DirectiveKind
    raw: str
    groups: Dict[str, Optional[str]]
    replacement: Optional[str] = None


Span = Union[str, Directive]


def tokenize(text: str) -> List[Span]:
    """Split text into literal strings and Directive spans, in order."""
    spans: List[Span] = []
    position = 0
    for match in DIRECTIVE_REGEX.finditer(text):
        if match.start() > position:
            spans.append(text[position:match.start()])
        kind = DirectiveKind(match.lastgroup)
        spans.append(Directive(kind=kind, raw=match.group(0), groups=match.groupdict()))
        position = match.end()
    if position < len(text):
        spans.append(text[position:])
    return spans


def defuse(text: str) -> str:
    """Break directive tokens in echoed text so a later parse leaves them alone."""
    text = _CALL_TOKEN.sub(lambda m: m.group(1) + ZERO_WIDTH_SPACE, text)
    return text.replace(TODO_SEPARATOR, TODO_SEPARATOR[0] + ZERO_WIDTH_SPACE + TODO_SEPARATOR[1:])


def parse_todo_block(body: str):
    """(title, description) from a block body, or None when Title or Description is missing."""
    title_match = _BLOCK_TITLE.search(body)
    description_match = _BLOCK_DESCRIPTION.search(body)
    if not title_match or not description_match:
        return None
    title = title_match.group("title").strip()
    if not title:
        return None
    return title, description_match.group("description").strip()


@dataclass
class ParseOutcome:
    """Rewritten reply plus what the directives did."""
    text: str
    execution_log: List[str] = field(default_factory=list)
    suggestion: str = ""
    mutated: bool = False
    approval_reasons: List[str] = field(default_factory=list)

    @property
    def approval_requested(self) -> bool:
        return bool(self.approval_reasons)


class DirectiveParser:
    """Applies directives to the todo store and runs execution directives via the controller.

    Nothing here raises for a bad directive: unknown ids and failed
    executions become inline ``**Error:**`` text, malformed blocks stay as
    they were.
    """

    def __init__(self, store: TodoManager, controller: ExecutionController):
        self.store = store
        self.controller = controller

    def parse(self, text: str) -> ParseOutcome:
        spans = tokenize(text)
        directives = [s for s in spans if isinstance(s, Directive)]
        outcome = ParseOutcome(text=text)
        if not directives:
            return outcome

        handlers = {
            DirectiveKind.ADD: self._apply_add,
            DirectiveKind.BLOCK: self._apply_block,
            DirectiveKind.COMPLETE: self._apply_complete,
            DirectiveKind.DELETE: self._apply_delete,
            DirectiveKind.EXECUTE_NEXT: self._apply_execute_next,
            DirectiveKind.EXECUTE_ALL: self._apply_execute_all,
            DirectiveKind.EXECUTE_TODO: self._apply_execute_todo,
            DirectiveKind.APPROVAL: self._apply_approval,
        }

        for kind in PHASE_ORDER:
            current = [d for d in directives if d.kind == kind]
            if not current:
                continue
            if kind == DirectiveKind.LIST:
                # Only the first listing is rendered
                current[0].replacement = self.render_todo_list()
                continue
            for directive in current:
                handlers[kind](directive, outcome)

        # Replacements echo LLM text, so directive tokens in them are defused
        outcome.text = "".join(
            s if isinstance(s, str) else (defuse(s.replacement) if s.replacement is not None else s.raw)
            for s in spans
        )

        if outcome.mutated:
            for line in outcome.execution_log:
                logger.todo(line)
            pending = self.store.count_pending()
            if pending:
                outcome.suggestion = (
                    f"Suggestion: You have {pending} pending todo(s). Use '/do next' to execute "
                    f"the next one, or '/do all' to execute all pending todos.")
                logger.system(outcome.suggestion)
        return outcome

    def render_todo_list(self) -> str:
        todos = self.store.list_todos(include_completed=True)
        lines = ["", "**Current Todos:**"]
        if not todos:
            lines.append("- No todos yet")
        for todo in todos:
            lines.append(f"- {todo.status_glyph} {todo.id}: {todo.title}")
            if todo.description:
                lines.append(f"  {todo.description}")
        return "\n".join(lines) + "\n"

    # -- phase handlers ---------------------------------------------------

    def _add(self, title: str, description: str, directive: Directive, outcome: ParseOutcome) -> None:
        try:
            todo_id = self.store.add(title, description)
        except ValidationError as e:
            directive.replacement = f"**Error:** {e}"
            return
        outcome.mutated = True
        outcome.execution_log.append(f"[TODO] Added: {title} (ID: {todo_id})")
        directive.replacement = f"**Added:** {title}"

    def _apply_add(self, directive: Directive, outcome: ParseOutcome) -> None:
        self._add(directive.groups["add_title"], directive.groups["add_desc"], directive, outcome)

    def _apply_block(self, directive: Directive, outcome: ParseOutcome) -> None:
        parsed = parse_todo_block(directive.groups["block_body"] or "")
        if parsed is None:
            logger.debug("Skipping malformed todo block")
            return
        self._add(parsed[0], parsed[1], directive, outcome)

    def _apply_complete(self, directive: Directive, outcome: ParseOutcome) -> None:
        todo_id = int(directive.groups["complete_id"])
        if not self.store.exists(todo_id):
            directive.replacement = f"**Error:** Todo {todo_id} not found"
            return
        self.store.mark_completed(todo_id)
        outcome.mutated = True
        outcome.execution_log.append(f"[TODO] Completed: ID {todo_id}")
        directive.replacement = f"**Completed:** Todo {todo_id}"

    def _apply_delete(self, directive: Directive, outcome: ParseOutcome) -> None:
        todo_id = int(directive.groups["delete_id"])
        if not self.store.delete(todo_id):
            directive.replacement = f"**Error:** Todo {todo_id} not found"
            return
        outcome.mutated = True
        outcome.execution_log.append(f"[TODO] Deleted: ID {todo_id}")
        directive.replacement = f"**Deleted:** Todo {todo_id}"

    def _record_execution(self, result, outcome: ParseOutcome) -> bool:
        outcome.mutated = True
        if result.success:
            outcome.execution_log.append(f"[EXECUTE] Completed: {result.title} (ID: {result.todo_id})")
        else:
            outcome.execution_log.append(f"[EXECUTE] Failed: {result.title} (ID: {result.todo_id}): {result.error}")
        return result.success

    def _apply_execute_next(self, directive: Directive, outcome: ParseOutcome) -> None:
        result = self.controller.execute_next()
        if result is None:
            directive.replacement = "**No pending todos to execute**"
        elif self._record_execution(result, outcome):
            directive.replacement = f"**Executed:** {result.title}"
        else:
            directive.replacement = f"**Error:** Failed to execute todo {result.todo_id}: {result.error}"

    def _apply_execute_all(self, directive: Directive, outcome: ParseOutcome) -> None:
        executed = failed = 0
        for todo in self.store.get_execution_queue():
            result = self.controller.execute_todo(todo.id)
            if result is None:
                continue
            if self._record_execution(result, outcome):
                executed += 1
            else:
                failed += 1
        text = f"**Executed {executed} pending todos**"
        if failed:
            text += f" ({failed} failed)"
        directive.replacement = text

    def _apply_execute_todo(self, directive: Directive, outcome: ParseOutcome) -> None:
        todo_id = int(directive.groups["execute_id"])
        result = self.controller.execute_todo(todo_id)
        if result is None:
            directive.replacement = f"**Error:** Todo {todo_id} not found or not pending"
        elif self._record_execution(result, outcome):
            directive.replacement = f"**Executed:** {result.title}"
        else:
            directive.replacement = f"**Error:** Failed to execute todo {todo_id}: {result.error}"

    def _apply_approval(self, directive: Directive, outcome: ParseOutcome) -> None:
        reason = directive.groups["approval_reason"]
        outcome.approval_reasons.append(reason)
        outcome.execution_log.append(f"[APPROVAL REQUESTED] {reason}")
        logger.approval(f"{reason}\nUse /todo to see pending items and /do commands to execute when ready.")
        directive.replacement = APPROVAL_MESSAGE.format(reason=reason)


def create_directive_parser(store: TodoManager, controller: ExecutionController) -> DirectiveParser:
    return DirectiveParser(store, controller)
