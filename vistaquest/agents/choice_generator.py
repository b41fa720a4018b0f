"""Choice generation adapter.

Asks the text model for exactly three next actions, constrained by a JSON
schema, and validates the decoded result.  The raw text goes through an
explicit normalization step first: models sometimes wrap JSON in a
markdown code fence even in JSON mode, so fences are stripped before
decoding.  Any structural deviation is a ``MalformedResponseError``,
never a silent default.
"""

import json
import logging
import re
import time
from typing import Annotated, Sequence

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from ..core.history import HistoryEntry, to_contents
from ..errors import ContentBlockedError, EmptyResultError, MalformedResponseError
from ..llm.transport import RetryingTransport
from ..prompts.themes import ThemeBook
from .base import BaseAdapter, ServiceResult, blocked_categories, collect_text

logger = logging.getLogger(__name__)

CHOICE_COUNT = 3

_OPEN_FENCE_RE = re.compile(r"\A\s*```(?:json)?\s*", re.IGNORECASE)
_CLOSE_FENCE_RE = re.compile(r"\s*```\s*\Z")

ChoiceText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ChoiceSet(BaseModel):
    """The structured result: exactly three action strings."""
    model_config = ConfigDict(strict=True, frozen=True)

    choices: list[ChoiceText] = Field(
        min_length=CHOICE_COUNT,
        max_length=CHOICE_COUNT,
        description="Exactly 3 distinct, compelling, and descriptive choices.",
    )

    def to_json(self) -> str:
        """Serialized form stored in the narrative thread."""
        return json.dumps({"choices": list(self.choices)})


def normalize_json_text(raw: str) -> str:
    """Strip a markdown code fence wrapping the whole text.

    Only a leading fence (with or without a ``json`` tag) and a trailing
    fence are removed; backticks inside the JSON body are left alone.
    """
    text = _OPEN_FENCE_RE.sub("", raw, count=1)
    return _CLOSE_FENCE_RE.sub("", text, count=1).strip()


def decode_choices(raw: str) -> ChoiceSet:
    """Normalize, decode and validate raw model text.

    Raises:
        MalformedResponseError: invalid JSON or wrong shape
    """
    text = normalize_json_text(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Model returned malformed JSON structure: {e}"
        ) from e

    try:
        return ChoiceSet.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Model returned invalid choices structure: {e.error_count()} error(s); "
            f"response: {text[:200]}"
        ) from e


class ChoiceGenerator(BaseAdapter):
    """Generate the next three options from the narrative thread."""

    adapter_name = "choice_generator"

    def __init__(self, transport: RetryingTransport, model: str, themes: ThemeBook):
        super().__init__(transport, model)
        self.themes = themes

    def build_config(self, theme: str | None) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=self.themes.choice_prompt(theme),
            response_mime_type="application/json",
            response_json_schema=ChoiceSet.model_json_schema(),
        )

    async def generate(
        self,
        history: Sequence[HistoryEntry],
        theme: str | None,
    ) -> ServiceResult[ChoiceSet]:
        """Generate choices for the narrative *history* snapshot.

        Raises:
            MalformedResponseError: response text is not a valid ChoiceSet
            ContentBlockedError: no text and the response carries safety flags
            EmptyResultError: no text and no block indicator
            TransportError: the transport gave up
        """
        start = time.perf_counter()
        payload = {
            "contents": to_contents(history),
            "config": self.build_config(theme),
        }

        response = await self._send(payload)
        raw = collect_text(response)
        if not raw.strip():
            categories = blocked_categories(response)
            if categories:
                raise ContentBlockedError(
                    "Choice generation was blocked due to safety flags: "
                    + ", ".join(categories),
                    categories=categories,
                )
            raise EmptyResultError("Text generation returned empty content.")

        choice_set = decode_choices(raw)
        elapsed = time.perf_counter() - start
        logger.info("%s: %d choices in %.2f s", self.adapter_name, len(choice_set.choices), elapsed)
        return ServiceResult(value=choice_set, elapsed=elapsed)
