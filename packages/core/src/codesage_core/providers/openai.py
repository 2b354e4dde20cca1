from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from codesage_core.errors import BackendConfigError
from codesage_core.models import BackendConfig
from codesage_core.providers.base import BaseBackend


class OpenAIBackend(BaseBackend):
    DEFAULT_MODEL = "gpt-4"

    def __init__(self, config: BackendConfig):
        super().__init__(config)
        if _OpenAI is None:
            raise BackendConfigError(
                "The 'openai' package is required for this provider. Install it with: pip install 'codesage[openai]'"
            )
        if not config.api_key:
            raise BackendConfigError("OPENAI_API_KEY is not set. Export it or set llm.api_key in .codesage.yml.")
        self.client = self._make_client(config)

    @staticmethod
    def _make_client(config: BackendConfig):
        kwargs = {"api_key": config.api_key}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        if config.timeout:
            kwargs["timeout"] = config.timeout
        return _OpenAI(**kwargs)

    def _call_api(self, prompt: str) -> str | None:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        return response.choices[0].message.content
