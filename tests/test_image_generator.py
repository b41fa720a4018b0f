"""Tests for ImageGenerator: prompt composition, request building, parsing."""

import pytest

from conftest import (
    IMAGE_MODEL,
    blocked_response,
    empty_response,
    image_response,
    make_png,
    prompt_blocked_response,
    text_response,
)
from vistaquest.core.history import HistoryEntry
from vistaquest.enums import Actor, InstructionMode
from vistaquest.errors import ContentBlockedError, EmptyResultError
from vistaquest.prompts.themes import DEFAULT_STYLES, DEFAULT_THEMES


# ---------------------------------------------------------------------------
# Tests: prompt composition
# ---------------------------------------------------------------------------

class TestBuildPrompt:
    def test_advance_prompt(self, image_generator):
        prompt = image_generator.build_prompt("Open the chest", "Fantasy", "Manga")
        assert prompt == (
            f"{DEFAULT_THEMES['Fantasy'].content_modifier}. "
            "Advance the scene in the previous image (provided in history) "
            "based on the user's action: Open the chest. "
            f"{DEFAULT_STYLES['Manga']} --ar 16:9"
        )

    def test_refine_prompt(self, image_generator):
        prompt = image_generator.build_prompt(
            "Add snow", "Domestic", "Manga", InstructionMode.REFINE
        )
        assert "Modify the scene in the previous image" in prompt
        assert "using this visual instruction: Add snow" in prompt
        assert prompt.startswith(DEFAULT_THEMES["Domestic"].content_modifier)

    def test_unknown_names_use_fallbacks(self, image_generator):
        prompt = image_generator.build_prompt("Wave", "Space Opera", "Claymation")
        assert prompt.startswith(DEFAULT_THEMES["Fantasy"].content_modifier)
        assert DEFAULT_STYLES["Watercolor Concept"] in prompt

    def test_custom_aspect_hint(self, transport, theme_book):
        from vistaquest.agents.image_generator import ImageGenerator

        generator = ImageGenerator(transport, IMAGE_MODEL, theme_book, aspect_hint="--ar 1:1")
        assert generator.build_prompt("Wave", None, None).endswith("--ar 1:1")


# ---------------------------------------------------------------------------
# Tests: generate
# ---------------------------------------------------------------------------

class TestGenerate:
    async def test_returns_first_image(self, image_generator, transport):
        png = make_png(color=(9, 9, 9))
        transport.queue(IMAGE_MODEL, image_response(png, text="Here is your scene"))

        result = await image_generator.generate((), "Look", "Fantasy", "Manga")

        assert result.value.data == png
        assert result.value.mime_type == "image/png"
        assert result.value.byproduct_text == "Here is your scene"
        assert result.value.data_url.startswith("data:image/png;base64,")
        assert result.elapsed >= 0

    async def test_history_copied_not_mutated(self, image_generator, transport):
        transport.queue(IMAGE_MODEL, image_response())
        history = [HistoryEntry.user_text("Start"), HistoryEntry.model_image(make_png())]

        await image_generator.generate(history, "Go", None, None)

        assert len(history) == 2
        payload = transport.requests_for(IMAGE_MODEL)[0]
        contents = payload["contents"]
        assert len(contents) == 3
        assert contents[-1].role == Actor.USER
        assert "Go" in contents[-1].parts[0].text

    async def test_requests_image_modality(self, image_generator, transport):
        transport.queue(IMAGE_MODEL, image_response())
        await image_generator.generate((), "Go", None, None)

        config = transport.requests_for(IMAGE_MODEL)[0]["config"]
        assert "IMAGE" in [str(m) for m in config.response_modalities]

    async def test_text_only_response_is_empty_result(self, image_generator, transport):
        transport.queue(IMAGE_MODEL, text_response("I cannot draw that"))
        with pytest.raises(EmptyResultError, match="Image generation returned empty data"):
            await image_generator.generate((), "Go", None, None)

    async def test_no_parts_is_empty_result(self, image_generator, transport):
        transport.queue(IMAGE_MODEL, empty_response())
        with pytest.raises(EmptyResultError):
            await image_generator.generate((), "Go", None, None)

    async def test_safety_rating_block(self, image_generator, transport):
        transport.queue(IMAGE_MODEL, blocked_response())
        with pytest.raises(ContentBlockedError) as exc_info:
            await image_generator.generate((), "Go", None, None)

        assert exc_info.value.categories == ["HARM_CATEGORY_DANGEROUS_CONTENT (P: HIGH)"]
        assert "HARM_CATEGORY_DANGEROUS_CONTENT" in exc_info.value.message

    async def test_prompt_block(self, image_generator, transport):
        transport.queue(IMAGE_MODEL, prompt_blocked_response())
        with pytest.raises(ContentBlockedError) as exc_info:
            await image_generator.generate((), "Go", None, None)

        assert exc_info.value.categories == ["SAFETY"]

    async def test_entry_for_image_thread(self, image_generator, transport):
        png = make_png()
        transport.queue(IMAGE_MODEL, image_response(png))
        result = await image_generator.generate((), "Go", None, None)

        entry = result.value.to_entry()
        assert entry.role == Actor.MODEL
        assert entry.has_image
        assert entry.parts[0].data == png
