"""
Flow Puzzle - Daily Challenge API

Daily levels are deterministic, so they are cached in Redis per date. A
Redis outage only costs a regeneration.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ..config import settings
from ..database import cache_get_json, cache_set_json, get_redis
from ..schemas import DailyResponse
from ..services.daily import daily_puzzle, date_to_seed, today_date_string
from ..services.fingerprint import fingerprint


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/daily", tags=["daily"])


def _cache_key(date_string: str) -> str:
    return f"daily:{date_string}"


async def build_daily(date_string: str, redis) -> dict:
    seed = date_to_seed(date_string)
    key = _cache_key(date_string)

    cached = await cache_get_json(redis, key)
    if cached is not None:
        return cached

    puzzle = await run_in_threadpool(
        daily_puzzle,
        date_string,
        settings.DEFAULT_PALETTE_SIZE,
        settings.DAILY_GRID_SIZE,
    )
    data = {
        "date": date_string,
        "seed": seed,
        "fingerprint": fingerprint(puzzle),
        "min_moves": puzzle.min_moves,
        "puzzle": puzzle.to_dict(),
    }
    await cache_set_json(redis, key, data, settings.DAILY_CACHE_TTL_SECONDS)
    logger.info("[Daily] cached %s (%s)", date_string, data["fingerprint"])
    return data


@router.get("", response_model=DailyResponse)
async def get_today(redis=Depends(get_redis)):
    """Today's level (server local date)."""
    return await build_daily(today_date_string(), redis)


@router.get("/{date_string}", response_model=DailyResponse)
async def get_for_date(date_string: str, redis=Depends(get_redis)):
    return await build_daily(date_string, redis)
