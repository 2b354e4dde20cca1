"""Base backend implementing the Template Method pattern.

All providers share the same call algorithm:
    ask() → _call_with_retry() → _call_api()   ← only this differs per provider
          → empty-response check

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

The pipeline only ever sees ask(prompt) -> str. Retry policy lives here, not
in the reviewer: the reviewer makes exactly one ask() per file and treats a
raised BackendInvocationFailed as "drop this file".
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from codesage_core.errors import BackendInvocationFailed
from codesage_core.models import BackendConfig

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3


class BaseBackend(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    # Used when the config leaves llm.model unset.
    DEFAULT_MODEL: str = ""

    def __init__(self, config: BackendConfig):
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model or self.DEFAULT_MODEL

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def ask(self, prompt: str) -> str:
        """Send one prompt and return the model's text response.

        Raises BackendInvocationFailed once retries are exhausted or the model
        returns nothing usable.
        """
        raw = self._call_with_retry(prompt)
        if raw is None or not raw.strip():
            raise BackendInvocationFailed(f"{self.__class__.__name__} returned an empty response")
        return raw.strip()

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, prompt: str) -> str | None:
        """Make a single API call and return the raw text response.

        Should raise on failure — _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, prompt: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise BackendInvocationFailed(f"{type(e).__name__}: {e}") from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None
