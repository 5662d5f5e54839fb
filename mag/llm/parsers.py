"""LLM response parsing utilities for mag."""

import json
import re
from typing import Any, Dict, Optional

from ..errors import CommunicationError
from ..messages import CommandType, GenericCommand, WriteFileCommand
from ..utils.logging import logger

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def extract_response_content(response_data: Any, response_path: str) -> Optional[str]:
    """Extract content from an LLM response using a jq-like path.

    Args:
        response_data: Decoded JSON response
        response_path: Path such as ".choices[0].message.content"

    Returns:
        The value found, or None if any step is missing
    """
    if not response_path.startswith('.'):
        logger.warning(f"Response path should start with '.': {response_path}")
        return None

    current = response_data
    for key, index in _PATH_TOKEN.findall(response_path[1:]):
        if key:
            if not isinstance(current, dict) or key not in current:
                return None
            current = current[key]
        else:
            position = int(index)
            if not isinstance(current, list) or position >= len(current):
                return None
            current = current[position]
    return current


def extract_json_object(llm_output: str) -> Dict[str, Any]:
    """Pull the first JSON object out of a reply, tolerating ``` fences and chatter.

    Raises:
        CommunicationError: if no JSON object can be decoded
    """
    text = llm_output.strip()
    fenced = re.search(r"```(?:json)?\s*\n(.*?)\n?```", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)

    raise CommunicationError(f"LLM reply does not contain a JSON object: {llm_output[:200]}")


def parse_generic_command(llm_output: str) -> GenericCommand:
    """Turn an action reply into a GenericCommand.

    Accepts ``{"command": "WriteFile", "path", "content"}`` and
    ``{"command": "BashCommand", "bash_command", "description"}``.
    """
    data = extract_json_object(llm_output)
    kind = data.get("command")

    if kind == "WriteFile":
        path, content = data.get("path"), data.get("content")
        if not isinstance(path, str) or not path or not isinstance(content, str):
            raise CommunicationError("WriteFile reply needs string 'path' and 'content'")
        return GenericCommand(
            type=CommandType.FILE_WRITE,
            description=data.get("description") or f"Write file {path}",
            file_path=path,
            file_content=content,
        )

    if kind == "BashCommand":
        command = data.get("bash_command")
        if not isinstance(command, str) or not command.strip():
            raise CommunicationError("BashCommand reply needs a non-empty 'bash_command'")
        return GenericCommand(
            type=CommandType.BASH_COMMAND,
            description=data.get("description") or "",
            bash_command=command.strip(),
            working_directory=data.get("working_directory") or "",
        )

    raise CommunicationError(f"Unknown command in LLM reply: {kind!r}")


def parse_write_file_command(llm_output: str) -> WriteFileCommand:
    """Like :func:`parse_generic_command` but only a file write is acceptable."""
    generic = parse_generic_command(llm_output)
    if not generic.is_file_write:
        raise CommunicationError("Expected a WriteFile command from the LLM")
    return generic.to_write_file_command()
