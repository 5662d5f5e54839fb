"""LLM client for API communication in mag."""

import json
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import DEFAULT_PROVIDER, DEFAULT_LLM_TIMEOUT
from ..errors import CommunicationError, ValidationError
from ..gateways.base import LLMBackend
from ..messages import GenericCommand, WriteFileCommand
from ..utils.logging import logger
from .parsers import extract_response_content, parse_generic_command, parse_write_file_command
from .prompts import build_action_prompt, build_chat_prompt
from .providers import Provider, available_providers, get_provider


class LLMClient(LLMBackend):
    """Talks to the configured vendor over HTTP using curl."""

    def __init__(self,
                 provider: str = DEFAULT_PROVIDER,
                 model: Optional[str] = None,
                 endpoint: Optional[str] = None,
                 timeout: int = DEFAULT_LLM_TIMEOUT,
                 policy=None):
        """Initialize LLM client.

        Args:
            provider: Provider name or alias
            model: Model name (provider default if empty)
            endpoint: URL overriding the provider's own
            timeout: Request timeout in seconds
            policy: PolicyChecker whose rules are described in system prompts

        Raises:
            ValidationError: if the provider is unknown
        """
        self.timeout = timeout
        self.endpoint = endpoint or ""
        self.policy = policy
        self._provider = self._resolve(provider)
        self.model = model or self._provider.default_model
        self.api_key = self._read_api_key(self._provider)
        if self._provider.requires_api_key and not self.api_key:
            logger.warning(f"{self._provider.api_key_env} is not set; requests to {self._provider.name} will fail")

    @staticmethod
    def _resolve(name: str) -> Provider:
        provider = get_provider(name)
        if provider is None:
            raise ValidationError(
                f"Unknown provider '{name}'. Available: {', '.join(available_providers())}")
        return provider

    @staticmethod
    def _read_api_key(provider: Provider) -> str:
        if not provider.api_key_env:
            return ""
        return os.environ.get(provider.api_key_env, "")

    # -- LLMBackend -------------------------------------------------------

    def set_provider(self, name: str, model: Optional[str] = None) -> None:
        """Switch vendor; the previous provider stays active if this raises."""
        provider = self._resolve(name)
        api_key = self._read_api_key(provider)
        if provider.requires_api_key and not api_key:
            raise ValidationError(
                f"API key not found for provider {provider.name}. "
                f"Please set {provider.api_key_env} environment variable.")
        self._provider = provider
        self.api_key = api_key
        self.model = model or provider.default_model
        # A custom endpoint belongs to the provider it was configured for
        self.endpoint = ""
        logger.llm(f"Switched to {provider.name} ({self.model})")

    def get_current_provider(self) -> str:
        return self._provider.name

    def propose_file_action(self, prompt: str) -> WriteFileCommand:
        reply = self._complete(build_action_prompt(self.policy, file_only=True),
                               [{"role": "user", "content": prompt}])
        return parse_write_file_command(reply)

    def propose_generic_action(self, prompt: str) -> GenericCommand:
        reply = self._complete(build_action_prompt(self.policy),
                               [{"role": "user", "content": prompt}])
        return parse_generic_command(reply)

    def chat(self, prompt: str) -> str:
        return self._complete(build_chat_prompt(self.policy),
                              [{"role": "user", "content": prompt}])

    def chat_with_history(self, prompt: str, history: List[Dict[str, str]]) -> str:
        messages = [m for m in history if m.get("role") in ("user", "assistant")]
        messages.append({"role": "user", "content": prompt})
        return self._complete(build_chat_prompt(self.policy), messages)

    # -- transport --------------------------------------------------------

    def _complete(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """Send one request and return the reply text.

        Raises:
            CommunicationError: on transport failure, API error or unexpected shape
        """
        provider = self._provider
        if provider.requires_api_key and not self.api_key:
            raise CommunicationError(f"{provider.api_key_env} is not set")

        payload = provider.build_payload(system_prompt, messages, self.model)
        url = self.endpoint or provider.url(self.model, self.api_key)
        response_data = self._make_api_call(url, provider.headers(self.api_key), payload)

        if isinstance(response_data, dict) and response_data.get("error"):
            error = response_data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise CommunicationError(f"{provider.name} API error: {message}")

        content = extract_response_content(response_data, provider.response_path)
        if not isinstance(content, str):
            logger.debug(f"Raw response: {response_data}")
            raise CommunicationError(
                f"No text at '{provider.response_path}' in {provider.name} response")
        logger.debug(f"LLM reply ({len(content)} chars)")
        return content

    def _make_api_call(self, url: str, headers: List[str], payload: Dict[str, Any]) -> Any:
        """Make the actual API call using curl."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as temp_file:
            json.dump(payload, temp_file)
            temp_payload_path = temp_file.name

        cmd = self._build_curl_command(url, headers, temp_payload_path)
        logger.debug(f"Making LLM API call to {self._provider.name} ({self.model})")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise CommunicationError(f"LLM API call timed out after {self.timeout} seconds")
        except OSError as e:
            raise CommunicationError(f"Error during LLM API call: {e}")
        finally:
            Path(temp_payload_path).unlink(missing_ok=True)

        if result.returncode != 0:
            raise CommunicationError(
                f"LLM API call failed with return code {result.returncode}: {result.stderr.strip()}")

        body, _, status = result.stdout.rpartition("\n")
        if status.isdigit() and int(status) >= 400 and not body.strip():
            raise CommunicationError(f"LLM API returned HTTP {status}")

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            logger.debug(f"Raw response: {body}")
            raise CommunicationError(f"Failed to parse LLM response as JSON (HTTP {status}): {e}")

    @staticmethod
    def _build_curl_command(url: str, headers: List[str], payload_file_path: str) -> List[str]:
        cmd = [
            "curl",
            "-s",
            "-X", "POST",
            "-H", "Content-Type: application/json",
        ]
        for header in headers:
            cmd.extend(["-H", header])
        cmd.extend(["-d", f"@{payload_file_path}", "-w", "\n%{http_code}", url])
        return cmd


def create_llm_client(config: Dict[str, Any], policy=None) -> LLMClient:
    """Create an LLM client from application configuration."""
    return LLMClient(
        provider=config.get("provider", DEFAULT_PROVIDER),
        model=config.get("model") or None,
        endpoint=config.get("endpoint") or None,
        timeout=config.get("llm_timeout", DEFAULT_LLM_TIMEOUT),
        policy=policy,
    )
