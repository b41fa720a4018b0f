"""Scene API routes: turns, refinements, reset and inspection.

The routes are a thin shell over one process-wide ``Orchestrator``.
Classified failures map to HTTP statuses:

    busy                      -> 409
    content_blocked           -> 422
    malformed/empty/transport -> 502
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from pydantic import ValidationError

from vistaquest.core.orchestrator import Orchestrator
from vistaquest.core.turn import TurnRequest
from vistaquest.enums import ErrorKind
from vistaquest.errors import BusyError, SceneError

from .models import (
    RefineBody,
    RefineResponse,
    SceneStateResponse,
    ThemesResponse,
    TurnBody,
    TurnResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS = {
    ErrorKind.BUSY: 409,
    ErrorKind.CONTENT_BLOCKED: 422,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.EMPTY_RESULT: 502,
    ErrorKind.TRANSPORT: 502,
}

_orchestrator: Orchestrator | None = None


def get_orchestrator() -> Orchestrator:
    """Get or create the orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator.from_config()
        logger.info("[get_orchestrator] Orchestrator created")
    return _orchestrator


def reset_orchestrator():
    """Drop the orchestrator singleton, releasing its scene image."""
    global _orchestrator
    if _orchestrator:
        _orchestrator.close()
    _orchestrator = None


def _raise_for(error: SceneError):
    raise HTTPException(status_code=ERROR_STATUS.get(error.kind, 500), detail=error.to_dict())


@router.post("/turn", response_model=TurnResponse)
async def submit_turn(body: TurnBody, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Advance the story with the player's action."""
    try:
        request = TurnRequest(action=body.action, theme=body.theme, style=body.style)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    outcome = await orchestrator.submit_turn(request)
    if not outcome.ok:
        _raise_for(outcome.error)

    result = outcome.result
    return TurnResponse(
        turn_number=result.turn_number,
        choices=result.choices,
        image_url=result.image.data_url,
        image_mime_type=result.image.mime_type,
        byproduct_text=result.image.byproduct_text,
        grounding=result.grounding,
        theme=result.theme,
        style=result.style,
        timings=result.timings.to_dict(),
    )


@router.post("/refine", response_model=RefineResponse)
async def submit_refinement(body: RefineBody, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Refine the current image without advancing the story."""
    try:
        outcome = await orchestrator.submit_refinement(body.instruction, body.theme, body.style)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not outcome.ok:
        _raise_for(outcome.error)

    result = outcome.result
    return RefineResponse(
        instruction=result.instruction,
        image_url=result.image.data_url,
        image_mime_type=result.image.mime_type,
        theme=result.theme,
        style=result.style,
        timings=result.timings.to_dict(),
    )


@router.post("/reset", response_model=SceneStateResponse)
async def reset_scene(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Start over: clear both histories and the current image."""
    try:
        orchestrator.reset()
    except BusyError as e:
        _raise_for(e)
    return _state_response(orchestrator)


@router.get("/state", response_model=SceneStateResponse)
async def get_state(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Current session flags, thread lengths and choices."""
    return _state_response(orchestrator)


@router.get("/image")
async def get_image(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Serve the current scene image file."""
    handle = orchestrator.image_handle
    if handle.path is None or not handle.path.exists():
        raise HTTPException(status_code=404, detail="No scene image yet")
    return FileResponse(handle.path, media_type=handle.mime_type or "image/png")


@router.get("/themes", response_model=ThemesResponse)
async def list_themes(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Theme and style names accepted by turns and refinements."""
    themes = orchestrator.themes
    return ThemesResponse(
        themes=themes.theme_names(),
        styles=themes.style_names(),
        fallback_theme=themes.fallback_theme,
        fallback_style=themes.fallback_style,
    )


def _state_response(orchestrator: Orchestrator) -> SceneStateResponse:
    snap = orchestrator.snapshot()
    return SceneStateResponse(
        turn_started=snap.turn_started,
        in_flight=snap.in_flight,
        turns_completed=snap.turns_completed,
        refinements_completed=snap.refinements_completed,
        image_thread_length=snap.image_thread_length,
        narrative_thread_length=snap.narrative_thread_length,
        choices=snap.choices,
        theme=snap.theme,
        style=snap.style,
        has_image=snap.image_path is not None,
    )
