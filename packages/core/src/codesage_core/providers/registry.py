"""Provider registry: maps a provider name from the config to a backend constructor.

Adding a provider means writing a BaseBackend subclass and one
register_provider() call; the pipeline never branches on provider names.
"""

from __future__ import annotations

from collections.abc import Callable

from codesage_core.errors import BackendConfigError
from codesage_core.models import BackendConfig
from codesage_core.providers.anthropic import AnthropicBackend
from codesage_core.providers.base import BaseBackend
from codesage_core.providers.ollama import OllamaBackend, QwenBackend
from codesage_core.providers.openai import OpenAIBackend

BackendFactory = Callable[[BackendConfig], BaseBackend]

_REGISTRY: dict[str, BackendFactory] = {}


def register_provider(name: str, factory: BackendFactory) -> None:
    _REGISTRY[name.lower()] = factory


def available_providers() -> list[str]:
    return sorted(_REGISTRY)


def create_backend(config: BackendConfig) -> BaseBackend:
    """Build the backend named by ``config.provider``.

    Raises BackendConfigError for an unknown provider; provider constructors
    raise it themselves for missing SDKs or credentials.
    """
    factory = _REGISTRY.get((config.provider or "").lower())
    if factory is None:
        raise BackendConfigError(
            f"Unknown LLM provider: {config.provider!r}. Choose one of: {', '.join(available_providers())}."
        )
    return factory(config)


register_provider("openai", OpenAIBackend)
register_provider("anthropic", AnthropicBackend)
register_provider("ollama", OllamaBackend)
register_provider("qwen", QwenBackend)
