"""LLM backend for mag."""

from .providers import Provider, PROVIDERS, get_provider, normalize_provider_name, available_providers
from .parsers import (
    extract_response_content,
    extract_json_object,
    parse_generic_command,
    parse_write_file_command,
)
from .client import LLMClient, create_llm_client

__all__ = [
    "Provider",
    "PROVIDERS",
    "get_provider",
    "normalize_provider_name",
    "available_providers",
    "extract_response_content",
    "extract_json_object",
    "parse_generic_command",
    "parse_write_file_command",
    "LLMClient",
    "create_llm_client",
]
