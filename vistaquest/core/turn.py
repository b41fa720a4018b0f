"""Turn request, result and outcome types."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ..agents.image_generator import GeneratedImage
from ..errors import SceneError

T = TypeVar("T")


class TurnRequest(BaseModel):
    """Caller-supplied parameters for one orchestration cycle."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    action: str = Field(min_length=1, description="The player's action text")
    theme: str | None = Field(default=None, description="Theme name; unknown names fall back")
    style: str | None = Field(default=None, description="Style name; unknown names fall back")


@dataclass
class StepTimings:
    """Per-step durations in seconds (0.0 for steps that did not run)."""
    image: float = 0.0
    describe: float = 0.0
    choices: float = 0.0
    total: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "image": round(self.image, 3),
            "describe": round(self.describe, 3),
            "choices": round(self.choices, 3),
            "total": round(self.total, 3),
        }


@dataclass
class TurnResult:
    """Result of one successful turn."""

    image: GeneratedImage
    choices: list[str]
    timings: StepTimings
    turn_number: int
    theme: str
    style: str
    grounding: str | None = None       # first turn only
    grounding_raw: str | None = None   # raw vision response, first turn only
    image_path: Path | None = None


@dataclass
class RefinementResult:
    """Result of one successful refinement."""

    image: GeneratedImage
    instruction: str
    timings: StepTimings
    theme: str
    style: str
    image_path: Path | None = None


@dataclass
class Outcome(Generic[T]):
    """Result-or-error value returned by the orchestrator."""

    result: T | None = None
    error: SceneError | None = None
    timings: StepTimings = field(default_factory=StepTimings)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the result or raise the classified error."""
        if self.error is not None:
            raise self.error
        return self.result


TurnOutcome = Outcome[TurnResult]
RefinementOutcome = Outcome[RefinementResult]
