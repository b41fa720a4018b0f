"""Pydantic request/response models for the Scene API."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class TurnBody(BaseModel):
    """Request for advancing the story."""
    action: str = Field(min_length=1)
    theme: Optional[str] = None
    style: Optional[str] = None


class RefineBody(BaseModel):
    """Request for refining the current image."""
    instruction: str = Field(min_length=1)
    theme: Optional[str] = None
    style: Optional[str] = None


class TurnResponse(BaseModel):
    """Response from a successful turn."""
    turn_number: int
    choices: List[str]
    image_url: str             # data: URL of the new scene
    image_mime_type: str
    byproduct_text: Optional[str] = None
    grounding: Optional[str] = None
    theme: str
    style: str
    timings: Dict[str, float]


class RefineResponse(BaseModel):
    """Response from a successful refinement."""
    instruction: str
    image_url: str
    image_mime_type: str
    theme: str
    style: str
    timings: Dict[str, float]


class SceneStateResponse(BaseModel):
    """Current session state."""
    turn_started: bool
    in_flight: bool
    turns_completed: int
    refinements_completed: int
    image_thread_length: int
    narrative_thread_length: int
    choices: List[str]
    theme: Optional[str] = None
    style: Optional[str] = None
    has_image: bool


class ThemesResponse(BaseModel):
    """Available theme and style names."""
    themes: List[str]
    styles: List[str]
    fallback_theme: str
    fallback_style: str
