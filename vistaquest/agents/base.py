"""Base adapter class and response inspection helpers.

Every adapter follows the same shape: build a request from a history
snapshot plus parameters, send it through the shared transport, then
parse and validate the response into a typed value.  Adapters never touch
live history; they only read the snapshots they are handed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Generic, Iterator, Mapping, TypeVar

from ..llm.transport import RetryingTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Candidate finish reasons that mean "refused on safety grounds"
SAFETY_FINISH_REASONS = frozenset({
    "SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "IMAGE_SAFETY",
    "IMAGE_PROHIBITED_CONTENT",
})


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Uniform envelope returned by every adapter."""

    value: T
    """The parsed, validated result."""

    elapsed: float
    """Wall-clock seconds spent in the adapter (including retries)."""


class BaseAdapter:
    """Shared plumbing for the Gemini service adapters."""

    # Subclasses set this for log messages
    adapter_name: str = "adapter"

    def __init__(self, transport: RetryingTransport, model: str):
        """
        Args:
            transport: Retrying transport shared by all adapters
            model: Gemini model name sent as the transport endpoint
        """
        self.transport = transport
        self.model = model

    async def _send(self, payload: Mapping[str, Any]) -> Any:
        start = time.perf_counter()
        response = await self.transport.send(self.model, payload)
        logger.debug("%s: %s responded in %.2f s",
                     self.adapter_name, self.model, time.perf_counter() - start)
        return response


# ── Response inspection ────────────────────────────────────────────────

def enum_name(value: Any) -> str:
    """Plain string for an SDK enum (or a raw string)."""
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def first_candidate(response: Any) -> Any | None:
    candidates = getattr(response, "candidates", None) or []
    return candidates[0] if candidates else None


def iter_parts(response: Any) -> Iterator[Any]:
    """Parts of the first candidate's content (may be empty)."""
    candidate = first_candidate(response)
    content = getattr(candidate, "content", None) if candidate else None
    yield from (getattr(content, "parts", None) or [])


def collect_text(response: Any) -> str:
    """Concatenate the non-thought text parts of the first candidate."""
    texts = []
    for part in iter_parts(response):
        text = getattr(part, "text", None)
        if text and not getattr(part, "thought", False):
            texts.append(text)
    return "".join(texts)


def blocked_categories(response: Any) -> list[str]:
    """Safety-block indicators present on a response.

    Reported as ``"CATEGORY (P: PROBABILITY)"`` for blocked safety ratings
    (probability other than NEGLIGIBLE), otherwise the prompt block reason
    or the safety finish reason.  Empty when nothing was blocked.
    """
    categories: list[str] = []

    feedback = getattr(response, "prompt_feedback", None)
    block_reason = enum_name(getattr(feedback, "block_reason", None)) if feedback else ""
    if block_reason and block_reason != "BLOCKED_REASON_UNSPECIFIED":
        categories.append(block_reason)

    for candidate in getattr(response, "candidates", None) or []:
        for rating in getattr(candidate, "safety_ratings", None) or []:
            probability = enum_name(getattr(rating, "probability", None))
            if getattr(rating, "blocked", False) and probability != "NEGLIGIBLE":
                categories.append(f"{enum_name(getattr(rating, 'category', None))} (P: {probability})")
        finish_reason = enum_name(getattr(candidate, "finish_reason", None))
        if finish_reason in SAFETY_FINISH_REASONS and not categories:
            categories.append(finish_reason)

    return categories


def dump_response(response: Any) -> str:
    """JSON dump of an SDK response for debugging."""
    dump = getattr(response, "model_dump_json", None)
    if callable(dump):
        return dump(exclude_none=True, indent=2)
    return repr(response)
