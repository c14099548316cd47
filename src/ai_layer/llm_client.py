"""
LLM client wrapper for the advisory service.
Supports Ollama (local), Groq, OpenAI and Anthropic providers over httpx.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from config import LLMSettings, get_settings


class LLMClient(ABC):
    """Abstract LLM client interface."""

    def __init__(self, settings: Optional[LLMSettings] = None):
        settings = settings or get_settings().llm
        self.model = settings.model_name
        self.api_key = settings.api_key
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens
        self.timeout = settings.timeout_seconds

    @abstractmethod
    def generate_sync(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> str:
        """Blocking generation, used from the advisory worker threads."""
        ...


class ChatCompletionsClient(LLMClient):
    """OpenAI-compatible /chat/completions endpoint."""

    BASE_URL = ""

    def _build_messages(self, prompt: str, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _body(self, prompt: str, system_prompt: Optional[str]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": self._build_messages(prompt, system_prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def generate_sync(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> str:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                self.BASE_URL, headers=self._headers(), json=self._body(prompt, system_prompt)
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]


class GroqClient(ChatCompletionsClient):
    """
    Groq API client - free tier, fast.
    Models: llama-3.1-70b-versatile, llama-3.1-8b-instant, mixtral-8x7b-32768
    """

    BASE_URL = "https://api.groq.com/openai/v1/chat/completions"

    def __init__(self, settings: Optional[LLMSettings] = None):
        super().__init__(settings)
        if not self.api_key:
            raise ValueError("Groq API key not set (LLM_API_KEY). Get a free key at https://console.groq.com")


class OpenAIClient(ChatCompletionsClient):
    """OpenAI API client."""

    BASE_URL = "https://api.openai.com/v1/chat/completions"


class AnthropicClient(LLMClient):
    """Anthropic Messages API client."""

    BASE_URL = "https://api.anthropic.com/v1/messages"

    def _request(self, prompt: str, system_prompt: Optional[str]) -> Dict[str, Any]:
        body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return {
            "headers": {
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
            "json": body,
        }

    def generate_sync(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> str:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.BASE_URL, **self._request(prompt, system_prompt))
            response.raise_for_status()
            return response.json()["content"][0]["text"]


class OllamaClient(LLMClient):
    """
    Local Ollama server (/api/generate, non-streaming).
    Default model qwen2.5:7b.
    """

    def __init__(self, settings: Optional[LLMSettings] = None):
        settings = settings or get_settings().llm
        super().__init__(settings)
        self.url = f"{settings.base_url.rstrip('/')}/api/generate"

    def _payload(self, prompt: str, system_prompt: Optional[str]) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        if system_prompt:
            payload["system"] = system_prompt
        return payload

    def generate_sync(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> str:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.url, json=self._payload(prompt, system_prompt))
            response.raise_for_status()
            return response.json().get("response", "")


PROVIDERS = {
    "ollama": OllamaClient,
    "groq": GroqClient,
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
}


def create_llm_client(settings: Optional[LLMSettings] = None) -> LLMClient:
    """Factory: create an LLM client based on settings."""
    settings = settings or get_settings().llm
    provider = settings.provider.lower()
    if provider not in PROVIDERS:
        raise ValueError(
            f"Unknown LLM provider: {provider}. Use one of {', '.join(sorted(PROVIDERS))}"
        )
    return PROVIDERS[provider](settings)
