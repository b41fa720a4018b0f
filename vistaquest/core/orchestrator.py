"""Turn orchestrator for VistaQuest.

Composed from two mixins:

    TurnPipelineMixin  – submit_turn: sequential first turn, fork-join after
    RefinementMixin    – submit_refinement: image-thread-only side channel

This file holds construction, the in-flight guard, reset and inspection.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..agents.choice_generator import ChoiceGenerator
from ..agents.image_generator import ImageGenerator
from ..agents.vision_grounder import VisionGrounder
from ..config import Config, config
from ..enums import ThreadName
from ..errors import BusyError
from ..llm.transport import RetryingTransport
from ..media.handles import SceneImageHandle
from ..prompts.themes import ThemeBook, get_theme_book
from ._refinement import RefinementMixin
from ._turn_pipeline import TurnPipelineMixin
from .history import DualHistoryStore, SessionState

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Read-only view of the session for callers and the API."""
    turn_started: bool
    in_flight: bool
    turns_completed: int
    refinements_completed: int
    image_thread_length: int
    narrative_thread_length: int
    choices: list[str] = field(default_factory=list)
    theme: str | None = None
    style: str | None = None
    image_path: Path | None = None


class Orchestrator(TurnPipelineMixin, RefinementMixin):
    """Drives turns and refinements against the dual history store.

    At most one turn or refinement runs at a time; a second submission
    while one is in flight is rejected with ``BusyError`` (never queued).
    A failed call leaves both threads and ``turn_started`` untouched.
    """

    def __init__(
        self,
        image_generator: ImageGenerator,
        choice_generator: ChoiceGenerator,
        vision_grounder: VisionGrounder,
        store: DualHistoryStore | None = None,
        image_handle: SceneImageHandle | None = None,
        themes: ThemeBook | None = None,
    ):
        self.image_generator = image_generator
        self.choice_generator = choice_generator
        self.vision_grounder = vision_grounder
        self.store = store or DualHistoryStore()
        self.image_handle = image_handle or SceneImageHandle()
        self.themes = themes or image_generator.themes

        # Presentation state carried between calls
        self.current_choices: list[str] = []
        self.last_theme: str | None = None
        self.last_style: str | None = None

    @classmethod
    def from_config(cls, cfg: Config = config, *, client=None) -> "Orchestrator":
        """Wire transport, adapters and image handle from configuration.

        Args:
            cfg: Configuration (defaults to the environment-backed singleton)
            client: Optional pre-built genai client for the transport
        """
        transport = RetryingTransport(
            api_key=cfg.GOOGLE_API_KEY,
            client=client,
            max_retries=cfg.MAX_RETRIES,
            base_delay=cfg.retry_base_delay(),
        )
        themes = get_theme_book()
        return cls(
            image_generator=ImageGenerator(
                transport, cfg.IMAGE_MODEL, themes, aspect_hint=cfg.IMAGE_ASPECT_HINT
            ),
            choice_generator=ChoiceGenerator(transport, cfg.TEXT_MODEL, themes),
            vision_grounder=VisionGrounder(
                transport,
                cfg.VISION_MODEL,
                max_dimension=cfg.VISION_MAX_DIMENSION,
                temperature=cfg.VISION_TEMPERATURE,
            ),
            image_handle=SceneImageHandle(cfg.media_dir()),
            themes=themes,
        )

    @property
    def state(self) -> SessionState:
        return self.store.state

    # ==== In-flight guard ====

    def _claim(self, label: str) -> None:
        """Check-and-set ``in_flight`` with no await in between.

        Raises:
            BusyError: another turn or refinement is in flight
        """
        if self.state.in_flight:
            logger.warning("Rejected %s: another call is in flight", label)
            raise BusyError()
        self.state.in_flight = True

    def _release_claim(self) -> None:
        self.state.in_flight = False

    # ==== Lifecycle ====

    def reset(self) -> None:
        """Clear both threads, the session flags and the scene image.

        Raises:
            BusyError: a turn or refinement is in flight
        """
        if self.state.in_flight:
            raise BusyError("Cannot reset while a turn or refinement is in progress.")
        self.store.reset()
        self.image_handle.release()
        self.current_choices = []
        self.last_theme = None
        self.last_style = None
        logger.info("Session reset")

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            turn_started=self.state.turn_started,
            in_flight=self.state.in_flight,
            turns_completed=self.state.turns_completed,
            refinements_completed=self.state.refinements_completed,
            image_thread_length=self.store.length(ThreadName.IMAGE),
            narrative_thread_length=self.store.length(ThreadName.NARRATIVE),
            choices=list(self.current_choices),
            theme=self.last_theme,
            style=self.last_style,
            image_path=self.image_handle.path,
        )

    def close(self) -> None:
        """Release the scene image file."""
        self.image_handle.release()
        logger.info("Orchestrator closed")
