"""Refinement mixin: the image-only side channel.

A refinement edits the current scene image without advancing the story:
only the image thread grows, the narrative thread and turn counter are
never touched, and ``turn_started`` is not required.
"""

import logging
import time

from ..enums import InstructionMode, ThreadName
from ..errors import BusyError, SceneError
from .history import HistoryEntry
from .turn import RefinementOutcome, RefinementResult, StepTimings

logger = logging.getLogger(__name__)

REFINEMENT_PREFIX = "Refinement: "


class RefinementMixin:
    """The ``submit_refinement`` side channel.

    Relies on instance attributes set by ``Orchestrator.__init__``.
    """

    async def submit_refinement(
        self,
        instruction: str,
        theme: str | None = None,
        style: str | None = None,
    ) -> RefinementOutcome:
        """Refine the current image with a visual instruction.

        Args:
            instruction: What to change in the picture
            theme: Theme name; defaults to the last turn's theme
            style: Style name; defaults to the last turn's style

        Raises:
            ValueError: *instruction* is empty (checked before anything runs)
        """
        instruction = (instruction or "").strip()
        if not instruction:
            raise ValueError("Please enter a visual instruction to refine the image.")

        timings = StepTimings()
        try:
            self._claim("refinement")
        except BusyError as e:
            return RefinementOutcome(error=e, timings=timings)

        start = time.perf_counter()
        try:
            result = await self._run_refinement(instruction, theme, style, timings)
            return RefinementOutcome(result=result, timings=timings)
        except SceneError as e:
            logger.error("Refinement failed (%s): %s", e.kind, e.message)
            return RefinementOutcome(error=e, timings=timings)
        finally:
            timings.total = time.perf_counter() - start
            self._release_claim()

    async def _run_refinement(
        self,
        instruction: str,
        theme: str | None,
        style: str | None,
        timings: StepTimings,
    ) -> RefinementResult:
        theme = self.themes.resolve_theme(theme or self.last_theme)
        style = self.themes.resolve_style(style or self.last_style)
        image_history = self.store.snapshot(ThreadName.IMAGE)
        logger.info("Refinement on %d image entries: %s", len(image_history), instruction[:80])

        image_result = await self.image_generator.generate(
            image_history, instruction, theme, style, InstructionMode.REFINE
        )
        timings.image = image_result.elapsed
        image = image_result.value

        def _mark_committed():
            self.state.refinements_completed += 1

        with self.store.begin_transaction("refinement") as txn:
            txn.append(
                ThreadName.IMAGE,
                [HistoryEntry.user_text(f"{REFINEMENT_PREFIX}{instruction}"), image.to_entry()],
            )
            txn.on_commit(_mark_committed)
            image_path = self.image_handle.replace(image.data, image.mime_type)

        return RefinementResult(
            image=image,
            instruction=instruction,
            timings=timings,
            theme=theme,
            style=style,
            image_path=image_path,
        )
