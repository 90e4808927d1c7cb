"""Gemini client that falls back across an ordered pool of API keys."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from google import genai
from google.genai import types

from intake.config import settings

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass
class KeyFailure:
    """One failed attempt with the key at ``index`` in the pool."""

    index: int
    error: Exception


class AllKeysFailedError(RuntimeError):
    """Raised when every key in the pool failed for a single call."""

    def __init__(self, failures: list[KeyFailure]) -> None:
        self.failures = failures
        detail = "; ".join(f"key {f.index}: {f.error}" for f in failures)
        super().__init__(f"All API keys failed ({detail})" if detail else "All API keys failed")


def _default_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


class KeyRotationClient:
    """Wraps a single generate call with sequential key fallback.

    Keys are always tried in configured order, so the first key is attempted
    on every call even if it failed last time.  ``last_failures`` holds the
    failures recorded during the most recent call.
    """

    def __init__(
        self,
        api_keys: Sequence[str],
        model: str | None = None,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        if not api_keys:
            msg = "At least one Gemini API key is required"
            raise ValueError(msg)
        self._keys = list(api_keys)
        self.model = model or settings.gemini_model
        self._factory = client_factory or _default_factory
        self._clients: dict[int, Any] = {}
        self.last_failures: list[KeyFailure] = []

    @property
    def pool_size(self) -> int:
        return len(self._keys)

    def _client_for(self, index: int) -> Any:
        if index not in self._clients:
            self._clients[index] = self._factory(self._keys[index])
        return self._clients[index]

    async def call(self, contents: list[Any], instruction: str) -> str:
        """Send *contents* under *instruction*, returning the first successful text.

        Raises ``AllKeysFailedError`` once every key has been tried.
        """
        config = types.GenerateContentConfig(system_instruction=instruction)
        failures: list[KeyFailure] = []
        self.last_failures = failures

        for index in range(len(self._keys)):
            try:
                client = self._client_for(index)
                response = await client.aio.models.generate_content(
                    model=self.model, contents=contents, config=config
                )
                text = response.text
                if not text:
                    msg = "empty response"
                    raise ValueError(msg)
            except Exception as exc:
                logger.warning("Key %d failed: %s", index, exc)
                failures.append(KeyFailure(index=index, error=exc))
                continue

            if failures:
                logger.info("Key %d succeeded after %d failure(s)", index, len(failures))
            return text

        raise AllKeysFailedError(failures)
