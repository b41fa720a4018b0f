"""Dual history store: the image thread and the narrative thread.

Two independent, append-only logs fed to different Gemini models:

    IMAGE      – multimodal (text + inline images), drives image-to-image
                 continuation and refinement
    NARRATIVE  – text only (user actions, the one-time grounding
                 description, serialized choice lists), drives choice
                 generation

Entries are frozen pydantic models.  Snapshots are tuples, so adapters can
read them but never mutate the live logs.  The orchestrator is the only
writer and serializes writes through the in-flight flag.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Iterable, Literal

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field

from ..enums import Actor, ThreadName

logger = logging.getLogger(__name__)


# ── Parts & entries ────────────────────────────────────────────────────

class TextPart(BaseModel):
    """A text part of a history entry."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str

    def to_genai(self) -> types.Part:
        return types.Part(text=self.text)


class ImagePart(BaseModel):
    """An inline image part of a history entry."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes = Field(repr=False)
    mime_type: str = "image/png"

    def to_genai(self) -> types.Part:
        return types.Part(inline_data=types.Blob(data=self.data, mime_type=self.mime_type))


Part = Annotated[TextPart | ImagePart, Field(discriminator="kind")]


class HistoryEntry(BaseModel):
    """One immutable entry in a history thread."""
    model_config = ConfigDict(frozen=True)

    role: Actor
    parts: tuple[Part, ...]

    @classmethod
    def user_text(cls, text: str) -> "HistoryEntry":
        return cls(role=Actor.USER, parts=(TextPart(text=text),))

    @classmethod
    def model_text(cls, text: str) -> "HistoryEntry":
        return cls(role=Actor.MODEL, parts=(TextPart(text=text),))

    @classmethod
    def model_image(cls, data: bytes, mime_type: str = "image/png") -> "HistoryEntry":
        return cls(role=Actor.MODEL, parts=(ImagePart(data=data, mime_type=mime_type),))

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def has_image(self) -> bool:
        return any(isinstance(p, ImagePart) for p in self.parts)

    def to_content(self) -> types.Content:
        """Convert to a google-genai ``Content`` for request payloads."""
        return types.Content(role=str(self.role), parts=[p.to_genai() for p in self.parts])


def to_contents(entries: Iterable[HistoryEntry]) -> list[types.Content]:
    return [entry.to_content() for entry in entries]


# ── Session flags ──────────────────────────────────────────────────────

@dataclass
class SessionState:
    """Lightweight session flags.

    ``turn_started`` flips to True after the first successful turn and
    stays True until reset; it selects the pipeline shape.  ``in_flight``
    guards against overlapping turns/refinements.
    """
    turn_started: bool = False
    in_flight: bool = False
    turns_completed: int = 0
    refinements_completed: int = 0


# ── Store ──────────────────────────────────────────────────────────────

class DualHistoryStore:
    """Owns both history threads and the session flags."""

    def __init__(self):
        self._threads: dict[ThreadName, list[HistoryEntry]] = {
            ThreadName.IMAGE: [],
            ThreadName.NARRATIVE: [],
        }
        self.state = SessionState()

    def snapshot(self, thread: ThreadName) -> tuple[HistoryEntry, ...]:
        """Immutable ordered view of *thread*."""
        return tuple(self._threads[ThreadName(thread)])

    def length(self, thread: ThreadName) -> int:
        return len(self._threads[ThreadName(thread)])

    def check_entries(self, thread: ThreadName, entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
        """Validate entries for *thread* without appending them.

        Raises:
            ValueError: if an image part is bound for the narrative thread
        """
        thread = ThreadName(thread)
        checked = list(entries)
        if thread == ThreadName.NARRATIVE:
            for entry in checked:
                if entry.has_image:
                    raise ValueError("Narrative thread is text-only; got an image part")
        return checked

    def commit(self, thread: ThreadName, entries: Iterable[HistoryEntry]) -> int:
        """Append *entries* to *thread*.  Returns the new length."""
        thread = ThreadName(thread)
        checked = self.check_entries(thread, entries)
        self._threads[thread].extend(checked)
        logger.debug("Committed %d entries to %s thread (len=%d)",
                     len(checked), thread, len(self._threads[thread]))
        return len(self._threads[thread])

    def begin_transaction(self, description: str = ""):
        """Start a staged commit-or-discard transaction on this store."""
        from .state_transaction import HistoryTransaction
        return HistoryTransaction(self, description)

    def reset(self) -> None:
        """Clear both threads and the session flags (the only deletion path)."""
        for entries in self._threads.values():
            entries.clear()
        self.state = SessionState()
        logger.info("History store reset")
