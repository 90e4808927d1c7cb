"""Request dispatcher. Resolves buffered items and routes them through a mode.

Four branches, each producing exactly one result per call:

- fresh primary: resolved content → primary profile → ``Mode.PRIMARY``
- fresh chained: primary output fed alone into the secondary profile →
  ``Mode.SECONDARY`` (the second call is never made if the first fails)
- follow-up question / correction: previous answer + reply text under the
  profile of the replied-to record, whose mode is inherited unchanged
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from google.genai import types

from intake.config import settings
from intake.llm.client import KeyRotationClient
from intake.llm.prompt import (
    build_correction_prompt,
    build_question_prompt,
    build_synthesis_prompt,
    instruction_for,
    is_question,
)
from intake.media.resolver import MediaResolver
from intake.models import Mode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from intake.media.resolver import ResolvedContent
    from intake.models import BufferedItem, SynthesisRecord

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Model output plus the mode to record it under."""

    text: str
    mode: Mode


def _to_contents(prompt: str, content: ResolvedContent) -> list[Any]:
    """Prompt text first, then every inline part in submission order."""
    return [
        prompt,
        *(types.Part.from_bytes(data=p.data, mime_type=p.mime_type) for p in content.parts),
    ]


class RequestDispatcher:
    """Builds one model request per trigger or follow-up.

    Singleton accessed via ``RequestDispatcher.get()``, which builds the key
    pool from settings.  Pass explicit collaborators for tests.
    """

    _instance: RequestDispatcher | None = None

    def __init__(self, client: KeyRotationClient, resolver: MediaResolver | None = None) -> None:
        self.client = client
        self.resolver = resolver or MediaResolver()

    @classmethod
    def get(cls) -> RequestDispatcher:
        """Return the shared dispatcher. Raises ValueError if no keys are configured."""
        if cls._instance is None:
            cls._instance = cls(KeyRotationClient(settings.get_gemini_api_keys()))
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        cls._instance = None

    async def synthesize(
        self,
        items: Sequence[BufferedItem],
        *,
        fps: int | None = None,
        chained: bool = False,
    ) -> DispatchResult:
        """Fresh synthesis over drained buffer items."""
        content = await self.resolver.resolve(items, fps)
        prompt = build_synthesis_prompt(content.notes)

        logger.info(
            "Dispatching %s synthesis: %d parts, %d notes",
            "chained" if chained else "primary",
            len(content.parts),
            len(content.notes),
        )
        primary_text = await self.client.call(
            _to_contents(prompt, content), instruction_for(Mode.PRIMARY)
        )
        if not chained:
            return DispatchResult(text=primary_text, mode=Mode.PRIMARY)

        secondary_text = await self.client.call([primary_text], instruction_for(Mode.SECONDARY))
        return DispatchResult(text=secondary_text, mode=Mode.SECONDARY)

    async def follow_up(
        self,
        record: SynthesisRecord,
        reply_text: str,
        items: Sequence[BufferedItem] = (),
    ) -> DispatchResult:
        """Answer or amend a previous result, inheriting its mode.

        Media in *items* is resolved only when given; a text-only reply
        touches no downloads.
        """
        mode = record.mode
        content = await self.resolver.resolve(items) if items else None
        notes = content.notes if content else []

        if is_question(reply_text):
            branch = "question"
            prompt = build_question_prompt(record.response_text, notes, reply_text, mode)
        else:
            branch = "correction"
            prompt = build_correction_prompt(record.response_text, notes, reply_text, mode)

        logger.info("Dispatching follow-up %s under %s profile", branch, mode)
        contents = _to_contents(prompt, content) if content else [prompt]
        text = await self.client.call(contents, instruction_for(mode))
        return DispatchResult(text=text, mode=mode)
