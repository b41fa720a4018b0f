"""
Canonical string enumerations for VistaQuest.

StrEnum values serialize as plain strings, so they drop straight into
JSON payloads, Gemini ``role`` fields and API responses.
"""

from enum import StrEnum


# ── History ────────────────────────────────────────────────────────────

class Actor(StrEnum):
    """Author of a history entry (matches Gemini content roles)."""
    USER = "user"
    MODEL = "model"


class ThreadName(StrEnum):
    """The two independent history logs."""
    IMAGE = "image"            # multimodal, drives image-to-image continuation
    NARRATIVE = "narrative"    # text-only, drives choice generation


# ── Image instructions ─────────────────────────────────────────────────

class InstructionMode(StrEnum):
    """Phrasing used for the synthesized image instruction."""
    ADVANCE = "advance"
    REFINE = "refine"


# ── Failures ───────────────────────────────────────────────────────────

class ErrorKind(StrEnum):
    """Classification carried by every orchestration failure."""
    TRANSPORT = "transport"
    CONTENT_BLOCKED = "content_blocked"
    MALFORMED_RESPONSE = "malformed_response"
    EMPTY_RESULT = "empty_result"
    BUSY = "busy"
