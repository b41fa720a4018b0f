"""
Shared test fixtures for the VistaQuest test suite.

Provides:
- FakeTransport: scripted per-model response queues (no API keys needed)
- google-genai response builders: image, text, choices, blocked, empty
- Real PNG bytes built with Pillow
- Adapter and orchestrator fixtures wired to the fake transport
- Markers: live (needs API keys)
"""

import asyncio
import io
import json
import os
from collections import defaultdict, deque
from typing import Any

import pytest

# Set test environment BEFORE any vistaquest imports
os.environ.setdefault("GOOGLE_API_KEY", "test-key")

from google.genai import types
from PIL import Image

from vistaquest.agents.choice_generator import ChoiceGenerator
from vistaquest.agents.image_generator import ImageGenerator
from vistaquest.agents.vision_grounder import VisionGrounder
from vistaquest.core.orchestrator import Orchestrator
from vistaquest.media.handles import SceneImageHandle
from vistaquest.prompts.themes import DEFAULT_STYLES, DEFAULT_THEMES, ThemeBook

IMAGE_MODEL = "image-model"
CHOICE_MODEL = "choice-model"
VISION_MODEL = "vision-model"

# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def make_png(width: int = 64, height: int = 48, color=(180, 120, 60)) -> bytes:
    """Encode a solid-color RGB image as PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


# ---------------------------------------------------------------------------
# Response builders (real google-genai types)
# ---------------------------------------------------------------------------

def _response(parts: list[types.Part], finish_reason=types.FinishReason.STOP) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=parts),
                finish_reason=finish_reason,
            )
        ]
    )


def image_response(data: bytes | None = None, mime_type: str = "image/png", text: str | None = None):
    """Image model response: optional text byproduct, then one inline image."""
    parts = []
    if text:
        parts.append(types.Part(text=text))
    parts.append(types.Part(inline_data=types.Blob(data=data or make_png(), mime_type=mime_type)))
    return _response(parts)


def text_response(text: str):
    return _response([types.Part(text=text)])


def choices_response(choices: list[Any] | None = None):
    choices = choices if choices is not None else ["Open the door", "Climb the tower", "Follow the river"]
    return text_response(json.dumps({"choices": choices}))


def empty_response():
    """A finished candidate with no parts and no safety flags."""
    return _response([])


def blocked_response(
    category=types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    probability=types.HarmProbability.HIGH,
):
    """A candidate stopped for safety with one blocked rating."""
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                finish_reason=types.FinishReason.SAFETY,
                safety_ratings=[
                    types.SafetyRating(category=category, probability=probability, blocked=True)
                ],
            )
        ]
    )


def prompt_blocked_response():
    """The prompt itself was blocked; no candidates at all."""
    return types.GenerateContentResponse(
        prompt_feedback=types.GenerateContentResponsePromptFeedback(
            block_reason=types.BlockedReason.SAFETY,
        )
    )


# ---------------------------------------------------------------------------
# FakeTransport: scripted stand-in for RetryingTransport
# ---------------------------------------------------------------------------

class FakeTransport:
    """Transport that returns queued responses per model name.

    Queued exceptions are raised instead of returned.  Every request is
    recorded in order.  ``gate`` (an ``asyncio.Event``) holds requests
    until it is set, so tests can observe a call while it is in flight.

    Usage:
        transport = FakeTransport()
        transport.queue("image-model", image_response())
        transport.queue("choice-model", TransportError("down"))
    """

    def __init__(self):
        self._queues: dict[str, deque] = defaultdict(deque)
        self.requests: list[tuple[str, dict]] = []
        self.outstanding = 0
        self.max_outstanding = 0
        self.gate: asyncio.Event | None = None

    def queue(self, model: str, *items: Any) -> "FakeTransport":
        self._queues[model].extend(items)
        return self

    def requests_for(self, model: str) -> list[dict]:
        return [payload for endpoint, payload in self.requests if endpoint == model]

    def pending(self, model: str) -> int:
        return len(self._queues[model])

    async def send(self, endpoint: str, payload: dict) -> Any:
        self.requests.append((endpoint, payload))
        self.outstanding += 1
        self.max_outstanding = max(self.max_outstanding, self.outstanding)
        try:
            if self.gate is not None:
                await asyncio.wait_for(self.gate.wait(), timeout=5)
            # Let sibling tasks start before this one settles
            await asyncio.sleep(0)
            if not self._queues[endpoint]:
                raise AssertionError(f"No response queued for {endpoint}")
            item = self._queues[endpoint].popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        finally:
            self.outstanding -= 1


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll *predicate* on the running loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached in time")
        await asyncio.sleep(0.005)


def queue_first_turn(transport: FakeTransport, grounding: str = "A lone knight stands at a misty gate.",
                     choices: list[str] | None = None, image: bytes | None = None) -> None:
    transport.queue(IMAGE_MODEL, image_response(image))
    transport.queue(VISION_MODEL, text_response(grounding))
    transport.queue(CHOICE_MODEL, choices_response(choices))


def queue_later_turn(transport: FakeTransport, choices: list[str] | None = None,
                     image: bytes | None = None) -> None:
    transport.queue(IMAGE_MODEL, image_response(image))
    transport.queue(CHOICE_MODEL, choices_response(choices))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def theme_book():
    return ThemeBook(DEFAULT_THEMES, DEFAULT_STYLES, "Fantasy", "Watercolor Concept")


@pytest.fixture
def image_generator(transport, theme_book):
    return ImageGenerator(transport, IMAGE_MODEL, theme_book)


@pytest.fixture
def choice_generator(transport, theme_book):
    return ChoiceGenerator(transport, CHOICE_MODEL, theme_book)


@pytest.fixture
def vision_grounder(transport):
    return VisionGrounder(transport, VISION_MODEL, max_dimension=800, temperature=0.5)


@pytest.fixture
def orchestrator(image_generator, choice_generator, vision_grounder, theme_book, tmp_path):
    orch = Orchestrator(
        image_generator=image_generator,
        choice_generator=choice_generator,
        vision_grounder=vision_grounder,
        image_handle=SceneImageHandle(tmp_path / "media"),
        themes=theme_book,
    )
    yield orch
    orch.close()
