"""Image generation adapter (image-to-image continuation).

Builds the outgoing request from a *copy* of the image thread plus one
synthesized user instruction, then extracts the first inline image from
the response.

Prompt shape:

    "{theme content}. {advance|refine instruction}. {style} {aspect hint}"
"""

import logging
import time
from dataclasses import dataclass
from typing import Sequence

from google.genai import types

from ..core.history import HistoryEntry, to_contents
from ..enums import InstructionMode
from ..errors import ContentBlockedError, EmptyResultError
from ..llm.transport import RetryingTransport
from ..media.images import to_data_url
from ..prompts.themes import ThemeBook
from .base import BaseAdapter, ServiceResult, blocked_categories, iter_parts

logger = logging.getLogger(__name__)

ADVANCE_TEMPLATE = (
    "Advance the scene in the previous image (provided in history) "
    "based on the user's action: {text}"
)
REFINE_TEMPLATE = (
    "Modify the scene in the previous image (provided in history) "
    "using this visual instruction: {text}"
)


@dataclass(frozen=True)
class GeneratedImage:
    """Raw image returned by the image model."""
    data: bytes
    mime_type: str = "image/png"
    byproduct_text: str | None = None

    @property
    def data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)

    def to_entry(self) -> HistoryEntry:
        """Model-authored image entry for the image thread."""
        return HistoryEntry.model_image(self.data, self.mime_type)


class ImageGenerator(BaseAdapter):
    """Generate the next scene image from the multimodal image thread."""

    adapter_name = "image_generator"

    def __init__(
        self,
        transport: RetryingTransport,
        model: str,
        themes: ThemeBook,
        aspect_hint: str = "--ar 16:9",
    ):
        super().__init__(transport, model)
        self.themes = themes
        self.aspect_hint = aspect_hint

    def build_prompt(
        self,
        text: str,
        theme: str | None,
        style: str | None,
        mode: InstructionMode = InstructionMode.ADVANCE,
    ) -> str:
        """Compose the single instruction sent as the latest user turn."""
        template = REFINE_TEMPLATE if mode == InstructionMode.REFINE else ADVANCE_TEMPLATE
        instruction = template.format(text=text)
        quality = f"{self.themes.style_modifier(style)} {self.aspect_hint}".strip()
        return f"{self.themes.content_modifier(theme)}. {instruction}. {quality}"

    def build_request(self, history: Sequence[HistoryEntry], prompt: str) -> list[HistoryEntry]:
        """Copy of *history* with the instruction appended; *history* is untouched."""
        return [*history, HistoryEntry.user_text(prompt)]

    async def generate(
        self,
        history: Sequence[HistoryEntry],
        text: str,
        theme: str | None,
        style: str | None,
        mode: InstructionMode = InstructionMode.ADVANCE,
    ) -> ServiceResult[GeneratedImage]:
        """Generate an image continuing (or refining) the scene in *history*.

        Raises:
            ContentBlockedError: no image and the response carries safety flags
            EmptyResultError: no image and no block indicator
            TransportError: the transport gave up
        """
        start = time.perf_counter()
        prompt = self.build_prompt(text, theme, style, mode)
        request = self.build_request(history, prompt)
        payload = {
            "contents": to_contents(request),
            "config": types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
        }
        logger.debug("%s: %s request with %d history entries",
                     self.adapter_name, mode, len(history))

        response = await self._send(payload)
        image = self.parse_response(response)

        elapsed = time.perf_counter() - start
        logger.info("%s: %d-byte %s image in %.2f s",
                    self.adapter_name, len(image.data), image.mime_type, elapsed)
        return ServiceResult(value=image, elapsed=elapsed)

    def parse_response(self, response) -> GeneratedImage:
        """Extract the first inline image and any text byproduct."""
        image_data: bytes | None = None
        mime_type = "image/png"
        texts: list[str] = []
        for part in iter_parts(response):
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data and image_data is None:
                image_data = inline.data
                mime_type = inline.mime_type or mime_type
            elif getattr(part, "text", None) and not getattr(part, "thought", False):
                texts.append(part.text)

        if image_data is None:
            categories = blocked_categories(response)
            if categories:
                raise ContentBlockedError(
                    "Image generation was blocked due to safety flags: "
                    + ", ".join(categories),
                    categories=categories,
                )
            raise EmptyResultError("Image generation returned empty data.")

        return GeneratedImage(
            data=image_data,
            mime_type=mime_type,
            byproduct_text="".join(texts) or None,
        )
