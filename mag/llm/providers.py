"""LLM vendor table: payload shaping, headers and reply location per provider."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..constants import PROVIDER_ALIASES

Messages = List[Dict[str, str]]

MAX_TOKENS = 1000
TEMPERATURE = 0.1


def _openai_payload(system_prompt: str, messages: Messages, model: str) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [{"role": "system", "content": system_prompt}] + [
            {"role": m["role"], "content": m["content"]} for m in messages
        ],
        "max_tokens": MAX_TOKENS,
        "temperature": TEMPERATURE,
    }


def _anthropic_payload(system_prompt: str, messages: Messages, model: str) -> Dict[str, Any]:
    return {
        "model": model,
        "max_tokens": MAX_TOKENS,
        "temperature": TEMPERATURE,
        "system": system_prompt,
        "messages": [
            {"role": m["role"], "content": [{"type": "text", "text": m["content"]}]}
            for m in messages
        ],
    }


def _gemini_payload(system_prompt: str, messages: Messages, model: str) -> Dict[str, Any]:
    return {
        "contents": [
            {
                "role": "model" if m["role"] == "assistant" else m["role"],
                "parts": [{"text": m["content"]}],
            }
            for m in messages
        ],
        "systemInstruction": {"role": "user", "parts": [{"text": system_prompt}]},
        "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": MAX_TOKENS},
    }


def _ollama_payload(system_prompt: str, messages: Messages, model: str) -> Dict[str, Any]:
    payload = _openai_payload(system_prompt, messages, model)
    del payload["max_tokens"]
    del payload["temperature"]
    payload["stream"] = False
    payload["options"] = {"temperature": TEMPERATURE}
    return payload


def _bearer_headers(api_key: str) -> List[str]:
    return [f"Authorization: Bearer {api_key}"] if api_key else []


def _anthropic_headers(api_key: str) -> List[str]:
    return ["anthropic-version: 2023-06-01", f"x-api-key: {api_key}"]


@dataclass(frozen=True)
class Provider:
    """Everything the HTTP client needs to talk to one vendor."""
    name: str
    url_template: str
    default_model: str
    response_path: str
    build_payload: Callable[[str, Messages, str], Dict[str, Any]]
    headers: Callable[[str], List[str]]
    api_key_env: Optional[str] = None

    def url(self, model: str, api_key: str = "") -> str:
        return self.url_template.format(model=model, api_key=api_key)

    @property
    def requires_api_key(self) -> bool:
        return self.api_key_env is not None


PROVIDERS: Dict[str, Provider] = {
    "anthropic": Provider(
        name="anthropic",
        url_template="https://api.anthropic.com/v1/messages",
        default_model="claude-3-haiku-20240307",
        response_path=".content[0].text",
        build_payload=_anthropic_payload,
        headers=_anthropic_headers,
        api_key_env="ANTHROPIC_API_KEY",
    ),
    "openai": Provider(
        name="openai",
        url_template="https://api.openai.com/v1/chat/completions",
        default_model="gpt-3.5-turbo",
        response_path=".choices[0].message.content",
        build_payload=_openai_payload,
        headers=_bearer_headers,
        api_key_env="OPENAI_API_KEY",
    ),
    "gemini": Provider(
        name="gemini",
        url_template="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={api_key}",
        default_model="gemini-1.5-flash",
        response_path=".candidates[0].content.parts[0].text",
        build_payload=_gemini_payload,
        headers=lambda api_key: [],
        api_key_env="GEMINI_API_KEY",
    ),
    "mistral": Provider(
        name="mistral",
        url_template="https://api.mistral.ai/v1/chat/completions",
        default_model="mistral-tiny",
        response_path=".choices[0].message.content",
        build_payload=_openai_payload,
        headers=_bearer_headers,
        api_key_env="MISTRAL_API_KEY",
    ),
    "ollama": Provider(
        name="ollama",
        url_template="http://localhost:11434/api/chat",
        default_model="llama3.2:latest",
        response_path=".message.content",
        build_payload=_ollama_payload,
        headers=lambda api_key: [],
    ),
}


def normalize_provider_name(name: str) -> Optional[str]:
    """Canonical provider name for ``name`` or an alias, or None if unknown."""
    key = (name or "").strip().lower()
    key = PROVIDER_ALIASES.get(key, key)
    return key if key in PROVIDERS else None


def get_provider(name: str) -> Optional[Provider]:
    canonical = normalize_provider_name(name)
    return PROVIDERS[canonical] if canonical else None


def available_providers() -> List[str]:
    return list(PROVIDERS)
