from __future__ import annotations

from codesage_core.errors import BackendConfigError
from codesage_core.models import BackendConfig
from codesage_core.providers.base import BaseBackend


class AnthropicBackend(BaseBackend):
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(self, config: BackendConfig):
        super().__init__(config)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise BackendConfigError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'codesage[anthropic]'"
            )
        if not config.api_key:
            raise BackendConfigError("ANTHROPIC_API_KEY is not set. Export it or set llm.api_key in .codesage.yml.")
        kwargs = {"api_key": config.api_key}
        if config.base_url:
            kwargs["base_url"] = config.base_url
        if config.timeout:
            kwargs["timeout"] = config.timeout
        self.client = Anthropic(**kwargs)

    def _call_api(self, prompt: str) -> str | None:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks)
