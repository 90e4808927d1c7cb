"""Data models for buffered input and persisted synthesis output."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class ItemKind(StrEnum):
    """What a buffered item contains."""

    IMAGE = "image"
    PDF = "pdf"
    AUDIO = "audio"
    VIDEO = "video"
    TEXT = "text"


BINARY_KINDS = frozenset({ItemKind.IMAGE, ItemKind.PDF, ItemKind.AUDIO, ItemKind.VIDEO})


class Mode(StrEnum):
    """Instruction profile that produced a synthesis.

    Follow-ups inherit the mode of the record they reply to.
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class BufferedItem:
    """One pending piece of user input.

    Binary kinds carry a fetchable ``locator`` and a ``mime_type``; text
    notes carry ``text`` and nothing else.
    """

    kind: ItemKind
    locator: str | None = None
    mime_type: str | None = None
    caption: str = ""
    text: str | None = None

    def __post_init__(self) -> None:
        if self.kind in BINARY_KINDS:
            if not self.locator:
                msg = f"{self.kind} item requires a locator"
                raise ValueError(msg)
            if not self.mime_type:
                msg = f"{self.kind} item requires a mime type"
                raise ValueError(msg)
            if self.text is not None:
                msg = f"{self.kind} item cannot carry note text"
                raise ValueError(msg)
        else:
            if self.text is None:
                msg = "text item requires text"
                raise ValueError(msg)
            if self.locator is not None:
                msg = "text item cannot carry a locator"
                raise ValueError(msg)

    @classmethod
    def note(cls, text: str) -> BufferedItem:
        return cls(kind=ItemKind.TEXT, text=text)

    @classmethod
    def media(
        cls, kind: ItemKind, locator: str, mime_type: str, caption: str | None = None
    ) -> BufferedItem:
        return cls(kind=kind, locator=locator, mime_type=mime_type, caption=caption or "")

    @property
    def is_binary(self) -> bool:
        return self.kind in BINARY_KINDS

    def summary(self) -> dict[str, str | None]:
        """Metadata kept with a synthesis record (never the bytes)."""
        return {"kind": str(self.kind), "mime_type": self.mime_type}


@dataclass(frozen=True)
class ContentPart:
    """A resolved binary payload ready to be sent inline to the model."""

    data: bytes
    mime_type: str


@dataclass
class SynthesisRecord:
    """A bot-produced answer, keyed by the bot's own outbound message id.

    Attributes:
        conversation_id: Chat the answer was sent to.
        message_id: Id of the bot message that carried the answer; replies
            to that message are joined back to this record.
        source_media: ``{"kind", "mime_type"}`` pairs for every input item.
        response_text: The literal model output.
        mode: Instruction profile that produced it.
        created_at: ISO 8601 UTC timestamp.
    """

    conversation_id: str
    message_id: str
    response_text: str
    mode: Mode
    source_media: list[dict[str, str | None]] = field(default_factory=list)
    created_at: str = ""

    def __post_init__(self) -> None:
        self.mode = Mode(self.mode)
        if not self.created_at:
            self.created_at = datetime.now(UTC).isoformat()

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``synthesis_records`` column order."""
        return (
            self.conversation_id,
            self.message_id,
            json.dumps(self.source_media),
            self.response_text,
            str(self.mode),
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> SynthesisRecord:
        """Deserialize from a database row. Raises ValueError on an unknown mode."""
        return cls(
            conversation_id=row[0],
            message_id=row[1],
            source_media=json.loads(row[2]) if row[2] else [],
            response_text=row[3],
            mode=Mode(row[4]),
            created_at=row[5],
        )
