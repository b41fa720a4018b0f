"""Vision grounding adapter.

Describes the first generated scene once, in a single paragraph.  That
paragraph is the only visual seed the narrative thread ever gets, so later
choice generation never needs to re-analyze images.  The image is
downsampled before upload to keep the payload small.

The adapter does not enforce "once per session"; the orchestrator only
calls it on the first turn.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from google.genai import types

from ..core.history import HistoryEntry, ImagePart, TextPart
from ..enums import Actor
from ..errors import ContentBlockedError, EmptyResultError, MalformedResponseError
from ..llm.transport import RetryingTransport
from ..media.images import downsample_image
from .base import (
    BaseAdapter,
    ServiceResult,
    blocked_categories,
    collect_text,
    dump_response,
    enum_name,
    first_candidate,
)
from .image_generator import GeneratedImage

logger = logging.getLogger(__name__)

GROUNDING_PROMPT = (
    "This is the initial scene description. Analyze the image and provide a single, "
    "detailed paragraph that describes the protagonist(s) and the major visual "
    "elements (objects, landscapes, atmosphere, or potential threats). This "
    "description is the sole visual seed for the continuing narrative thread."
)


@dataclass(frozen=True)
class SceneDescription:
    """One descriptive paragraph plus the raw response for debugging."""
    text: str
    raw_response: str = ""


class VisionGrounder(BaseAdapter):
    """Describe a generated scene image in one paragraph."""

    adapter_name = "vision_grounder"

    def __init__(
        self,
        transport: RetryingTransport,
        model: str,
        max_dimension: int = 800,
        temperature: float = 0.5,
    ):
        super().__init__(transport, model)
        self.max_dimension = max_dimension
        self.temperature = temperature

    async def describe(self, image: GeneratedImage) -> ServiceResult[SceneDescription]:
        """Describe *image*.

        Raises:
            MalformedResponseError: the image bytes could not be decoded
            ContentBlockedError: no description and the response carries safety flags
            EmptyResultError: no description and no block indicator
            TransportError: the transport gave up
        """
        start = time.perf_counter()
        try:
            data, mime_type = await asyncio.to_thread(
                downsample_image, image.data, self.max_dimension
            )
        except ValueError as e:
            raise MalformedResponseError(f"Generated image could not be decoded: {e}") from e
        logger.debug("%s: downsampled %d -> %d bytes",
                     self.adapter_name, len(image.data), len(data))

        request = HistoryEntry(
            role=Actor.USER,
            parts=(TextPart(text=GROUNDING_PROMPT), ImagePart(data=data, mime_type=mime_type)),
        )
        payload = {
            "contents": [request.to_content()],
            "config": types.GenerateContentConfig(temperature=self.temperature),
        }

        response = await self._send(payload)
        description = collect_text(response).strip()
        if not description:
            categories = blocked_categories(response)
            if categories:
                raise ContentBlockedError(
                    "Image description was blocked due to safety flags: "
                    + ", ".join(categories),
                    categories=categories,
                )
            candidate = first_candidate(response)
            finish = enum_name(getattr(candidate, "finish_reason", None)) if candidate else ""
            raise EmptyResultError(
                f"Image description returned empty content. Finish Reason: {finish or 'N/A'}."
            )

        elapsed = time.perf_counter() - start
        logger.info("%s: %d-char description in %.2f s",
                    self.adapter_name, len(description), elapsed)
        return ServiceResult(
            value=SceneDescription(text=description, raw_response=dump_response(response)),
            elapsed=elapsed,
        )
