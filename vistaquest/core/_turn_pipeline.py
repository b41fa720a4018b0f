"""Turn pipeline mixin: the submit_turn method.

Split from orchestrator.py for maintainability.

    First turn (turn_started is False), strictly sequential:
        image -> vision grounding (needs the image) -> choices (needs the
        grounding paragraph in the narrative working copy)

    Later turns, fork-join:
        image || choices, both against snapshots taken before dispatch;
        either failure fails the whole turn

Nothing is written to the live threads until every call has succeeded.
"""

import logging
import time

from ..enums import InstructionMode, ThreadName
from ..errors import BusyError, SceneError
from ..utils.tasks import fork_join
from .history import HistoryEntry
from .turn import StepTimings, TurnOutcome, TurnRequest, TurnResult

logger = logging.getLogger(__name__)


class TurnPipelineMixin:
    """The main ``submit_turn`` pipeline.

    Relies on instance attributes set by ``Orchestrator.__init__``.
    """

    async def submit_turn(self, request: TurnRequest) -> TurnOutcome:
        """Run one turn and commit it atomically.

        Args:
            request: Action text plus theme/style names

        Returns:
            TurnOutcome with ``result`` on success, or ``error`` holding the
            classified failure (BusyError, TransportError, ...).  Timings of
            the steps that did run are always filled in.
        """
        timings = StepTimings()
        try:
            self._claim("turn")
        except BusyError as e:
            return TurnOutcome(error=e, timings=timings)

        start = time.perf_counter()
        try:
            result = await self._run_turn(request, timings)
            return TurnOutcome(result=result, timings=timings)
        except SceneError as e:
            logger.error("Turn failed (%s): %s", e.kind, e.message)
            return TurnOutcome(error=e, timings=timings)
        finally:
            timings.total = time.perf_counter() - start
            self._release_claim()

    async def _run_turn(self, request: TurnRequest, timings: StepTimings) -> TurnResult:
        theme = self.themes.resolve_theme(request.theme)
        style = self.themes.resolve_style(request.style)

        image_history = self.store.snapshot(ThreadName.IMAGE)
        narrative_history = self.store.snapshot(ThreadName.NARRATIVE)
        user_entry = HistoryEntry.user_text(request.action)
        turn_number = self.state.turns_completed + 1

        grounding = None
        if not self.state.turn_started:
            # ── FIRST TURN (sequential: image -> describe -> choices) ──
            logger.info("Turn %d: sequential pipeline (theme=%s, style=%s)", turn_number, theme, style)

            image_result = await self.image_generator.generate(
                image_history, request.action, theme, style, InstructionMode.ADVANCE
            )
            timings.image = image_result.elapsed

            grounding = await self.vision_grounder.describe(image_result.value)
            timings.describe = grounding.elapsed

            working = [
                *narrative_history,
                user_entry,
                HistoryEntry.model_text(grounding.value.text),
            ]
            choices_result = await self.choice_generator.generate(working, theme)
            timings.choices = choices_result.elapsed
        else:
            # ── LATER TURNS (fork-join: image || choices, no vision step) ──
            logger.info("Turn %d: concurrent pipeline (theme=%s, style=%s)", turn_number, theme, style)

            working = [*narrative_history, user_entry]
            image_result, choices_result = await fork_join(
                self.image_generator.generate(
                    image_history, request.action, theme, style, InstructionMode.ADVANCE
                ),
                self.choice_generator.generate(working, theme),
            )
            timings.image = image_result.elapsed
            timings.choices = choices_result.elapsed

        image = image_result.value
        choice_set = choices_result.value

        def _mark_committed():
            self.state.turn_started = True
            self.state.turns_completed = turn_number
            self.current_choices = list(choice_set.choices)
            self.last_theme = theme
            self.last_style = style

        with self.store.begin_transaction(f"turn {turn_number}") as txn:
            txn.append(ThreadName.IMAGE, [user_entry, image.to_entry()])
            txn.append(
                ThreadName.NARRATIVE,
                [*working[len(narrative_history):], HistoryEntry.model_text(choice_set.to_json())],
            )
            txn.on_commit(_mark_committed)
            image_path = self.image_handle.replace(image.data, image.mime_type)

        logger.info("Turn %d committed (image=%d, narrative=%d entries)",
                    turn_number,
                    self.store.length(ThreadName.IMAGE),
                    self.store.length(ThreadName.NARRATIVE))

        return TurnResult(
            image=image,
            choices=list(choice_set.choices),
            timings=timings,
            turn_number=turn_number,
            theme=theme,
            style=style,
            grounding=grounding.value.text if grounding else None,
            grounding_raw=grounding.value.raw_response if grounding else None,
            image_path=image_path,
        )
