"""
Flow Puzzle - Levels API

Generation, validation and player-side checks. Generation runs off the
event loop: plain generation in the threadpool, unique generation one
attempt at a time through the same threadpool.
"""

import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..middleware.security import limiter, validate_json_size
from ..schemas import (
    GenerateRequest, GenerateResponse, GenerateUniqueRequest, GenerateUniqueResponse,
    PuzzleRequest, ValidationResult, FingerprintRequest, FingerprintResponse,
    PlayerPathsRequest, CompletionResponse, HintResponse,
)
from ..services import seen_store
from ..services.color_counts import calculate_color_counts
from ..services.fingerprint import fingerprint, is_known, merge_seen
from ..services.generator import MIN_PATH_CELLS, generate_level
from ..services.hints import next_hint
from ..services.orchestrator import generate_unique_async
from ..services.validator import check_completion, validate_level


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/levels",
    tags=["levels"],
    dependencies=[Depends(validate_json_size)],
)


def resolve_colors(payload: GenerateRequest) -> Tuple[int, int, int]:
    """
    (min_colors, max_colors, palette_size) for a request.

    Missing bounds come from the color-count heuristic, limited so that every
    color still fits a 3-cell path.
    """
    palette_size = settings.DEFAULT_PALETTE_SIZE if payload.palette_size is None else payload.palette_size
    min_colors, max_colors = payload.min_colors, payload.max_colors

    if min_colors is None or max_colors is None:
        fit = max(1, (payload.width * payload.height) // MIN_PATH_CELLS)
        heuristic_min, heuristic_max = calculate_color_counts(payload.width, payload.height, max(1, palette_size))
        if min_colors is None:
            min_colors = min(heuristic_min, fit)
        if max_colors is None:
            max_colors = max(min_colors, min(heuristic_max, fit))

    return min_colors, max_colors, palette_size


# ============================================
# GENERATION
# ============================================

@router.post("/generate", response_model=GenerateResponse)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def generate(request: Request, payload: GenerateRequest):
    min_colors, max_colors, palette_size = resolve_colors(payload)

    result = await run_in_threadpool(
        generate_level,
        payload.width,
        payload.height,
        min_colors,
        max_colors,
        palette_size,
        payload.seed,
        settings.GENERATION_ATTEMPT_BUDGET,
    )
    validation = validate_level(result.puzzle)
    if not validation["valid"]:
        logger.warning("[Levels] generated level failed %s: %s", validation["rule"], validation["error"])

    return GenerateResponse(
        puzzle=result.puzzle.to_dict(),
        used_fallback=result.used_fallback,
        min_moves=result.puzzle.min_moves,
        fingerprint=fingerprint(result.puzzle),
        validation=validation,
    )


@router.post("/generate-unique", response_model=GenerateUniqueResponse)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def generate_unique_level(
    request: Request,
    payload: GenerateUniqueRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Generates a level absent from the caller's seen-set.

    With a player_id the stored seen-set is merged in and the accepted
    fingerprint is stored.
    """
    min_colors, max_colors, palette_size = resolve_colors(payload)
    max_attempts: Optional[int] = payload.max_attempts
    if max_attempts is None:
        max_attempts = settings.UNIQUE_ATTEMPTS_INTERACTIVE

    seen = frozenset(payload.seen_fingerprints)
    if payload.player_id:
        seen = merge_seen(seen, await seen_store.load_seen(db, payload.player_id))

    search = await generate_unique_async(
        payload.width,
        payload.height,
        min_colors,
        max_colors,
        palette_size=palette_size,
        seen=seen,
        max_attempts=max_attempts,
        seed=payload.seed,
        attempt_budget=settings.GENERATION_ATTEMPT_BUDGET,
        time_limit=settings.UNIQUE_TIME_LIMIT_SECONDS,
    )

    if payload.player_id and search.is_unique:
        await seen_store.record_fingerprint(db, payload.player_id, search.fingerprint)

    return GenerateUniqueResponse(
        puzzle=search.puzzle.to_dict(),
        fingerprint=search.fingerprint,
        is_unique=search.is_unique,
        attempts_used=search.attempts_used,
        used_fallback=search.used_fallback,
        min_moves=search.puzzle.min_moves,
        warning=search.warning,
        validation_error=search.validation_error,
    )


# ============================================
# CHECKS
# ============================================

@router.post("/validate", response_model=ValidationResult)
async def validate(payload: PuzzleRequest):
    return validate_level(payload.puzzle.to_puzzle())


@router.post("/fingerprint", response_model=FingerprintResponse)
async def level_fingerprint(payload: FingerprintRequest):
    fp = fingerprint(payload.puzzle.to_puzzle())
    return FingerprintResponse(fingerprint=fp, known=is_known(fp, payload.seen_fingerprints))


@router.post("/check-completion", response_model=CompletionResponse)
async def completion(payload: PlayerPathsRequest):
    return check_completion(payload.puzzle.to_puzzle(), payload.player_paths)


@router.post("/hint", response_model=HintResponse)
async def hint(payload: PlayerPathsRequest):
    solution = next_hint(payload.puzzle.to_puzzle(), payload.player_paths)
    if solution is None:
        return HintResponse()
    return HintResponse(color_id=solution.color_id, path=list(solution.cells))
