"""Local inference through Ollama.

Ollama serves an OpenAI-compatible API under ``/v1``, so this reuses the
OpenAI SDK pointed at the local server instead of pulling in another client.
No API key is needed; the SDK insists on one, so a placeholder is sent.
"""

from __future__ import annotations

from codesage_core.errors import BackendConfigError
from codesage_core.models import BackendConfig
from codesage_core.providers import openai as openai_provider
from codesage_core.providers.openai import OpenAIBackend

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaBackend(OpenAIBackend):
    DEFAULT_MODEL = "llama3"

    def __init__(self, config: BackendConfig):
        if openai_provider._OpenAI is None:
            raise BackendConfigError(
                "The 'openai' package is required for the Ollama provider. "
                "Install it with: pip install 'codesage[openai]'"
            )
        self.config = config
        self.client = self._make_client(
            BackendConfig(
                api_key=config.api_key or "ollama",
                base_url=self.api_url(config.base_url),
                timeout=config.timeout,
            )
        )

    @staticmethod
    def api_url(base_url: str | None) -> str:
        url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        return url if url.endswith("/v1") else url + "/v1"


class QwenBackend(OllamaBackend):
    """Qwen models served by Ollama; non-qwen model names fall back to the default."""

    DEFAULT_MODEL = "qwen2:7b"

    @property
    def model(self) -> str:
        configured = self.config.model or ""
        return configured if "qwen" in configured else self.DEFAULT_MODEL
