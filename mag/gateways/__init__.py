"""Tool gateways and LLM backend interfaces for mag."""

from .base import LLMBackend, FileGateway, ShellGateway
from .local import LocalFileGateway, LocalShellGateway, create_local_gateways

__all__ = [
    "LLMBackend",
    "FileGateway",
    "ShellGateway",
    "LocalFileGateway",
    "LocalShellGateway",
    "create_local_gateways",
]
