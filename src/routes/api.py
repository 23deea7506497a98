"""
Rhythm Chart Generator - JSON API Routes

Provides REST endpoints for:
- Chart generation from detected onsets + song structure
- Difficulty rating of an existing (e.g. hand-edited) chart
- Difficulty parameter lookup for a level
- Health check

Generation is CPU-bound and owns its state for the whole pass, so each
request runs the complete pipeline as one unit in a worker thread.
"""

import asyncio
import random
import time
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException
from loguru import logger
from pydantic import BaseModel, Field, model_validator

from src.config import (
    APP_VERSION,
    DEFAULT_DIFFICULTY,
    DEFAULT_LANE_COUNT,
    DEFAULT_PLAY_STYLE,
    MAX_ONSETS_PER_REQUEST,
    MAX_SONG_DURATION,
)
from src.services.chart_generator import GenerationFailure, build_chart
from src.services.chart_models import ChartFeatures, Note, Onset
from src.services.difficulty_profile import get_difficulty_config, resolve_difficulty
from src.services.difficulty_rating import rate_chart
from src.services.structure_parser import default_structure, parse_song_structure

router = APIRouter(prefix="/api", tags=["API"])

# Track startup time for health check
_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------
class OnsetPayload(BaseModel):
    time: float = Field(ge=0.0, allow_inf_nan=False)
    energy: float = Field(ge=0.0, le=1.0)
    isLowFreq: bool = False


class FeaturesPayload(BaseModel):
    normal: bool = True
    holds: bool = True
    catch: bool = True


class GenerateChartRequest(BaseModel):
    onsets: List[OnsetPayload]
    duration: float = Field(gt=0, le=MAX_SONG_DURATION)
    structure: Optional[Dict[str, Any]] = None
    difficulty: Union[float, str] = DEFAULT_DIFFICULTY
    lane_count: int = DEFAULT_LANE_COUNT
    play_style: str = DEFAULT_PLAY_STYLE
    features: FeaturesPayload = Field(default_factory=FeaturesPayload)
    seed: Optional[int] = None

    @model_validator(mode="after")
    def _onsets_within_song(self):
        late = [o.time for o in self.onsets if o.time > self.duration]
        if late:
            raise ValueError(
                f"{len(late)} onset(s) after the end of the song "
                f"(first at {late[0]}s, duration {self.duration}s)"
            )
        return self


class RateChartRequest(BaseModel):
    notes: List[Dict[str, Any]]
    duration: float = Field(ge=0, allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check():
    """Health check endpoint for the service."""
    return {
        "status": "ok",
        "version": APP_VERSION,
        "uptime_seconds": round(time.time() - _START_TIME, 2),
    }


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------
@router.post("/charts/generate")
async def api_generate_chart(req: GenerateChartRequest):
    """
    Generate a chart from onsets.

    Without a ``structure`` the default single-section structure is used.
    Returns 422 when the onsets are too sparse to produce any note.
    """
    if len(req.onsets) > MAX_ONSETS_PER_REQUEST:
        raise HTTPException(
            status_code=413,
            detail=f"Too many onsets ({len(req.onsets)}). "
            f"Maximum is {MAX_ONSETS_PER_REQUEST}.",
        )

    onsets = [Onset.from_dict(o.model_dump()) for o in req.onsets]
    if req.structure:
        structure = parse_song_structure(req.structure, duration=req.duration)
    else:
        structure = default_structure(req.duration)
    features = ChartFeatures(**req.features.model_dump())
    rng = random.Random(req.seed) if req.seed is not None else None

    logger.info(
        "🎵 Generate request: {} onsets, difficulty={}, {}K {}",
        len(onsets),
        req.difficulty,
        req.lane_count,
        req.play_style,
    )

    try:
        result = await asyncio.to_thread(
            build_chart,
            onsets,
            structure,
            req.duration,
            difficulty=req.difficulty,
            lane_count=req.lane_count,
            play_style=req.play_style,
            features=features,
            rng=rng,
        )
    except GenerationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"❌ Chart generation error: {e}")
        raise HTTPException(status_code=500, detail=f"Chart generation failed: {e}")

    return result.to_dict()


@router.post("/charts/rate")
async def api_rate_chart(req: RateChartRequest):
    """Rate an existing chart, e.g. after editing."""
    try:
        notes = [Note.from_dict(n) for n in req.notes]
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid note: {e}")

    try:
        rating = await asyncio.to_thread(rate_chart, notes, req.duration)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid note: {e}")

    return {"rating": rating, "note_count": len(notes)}


@router.get("/difficulty/{level}")
async def api_difficulty_config(level: str):
    """Return the generation parameters for a level or legacy tier name."""
    resolved = resolve_difficulty(level)
    return {"level": resolved, **get_difficulty_config(resolved).to_dict()}
