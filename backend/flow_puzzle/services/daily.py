"""
Flow Puzzle - Daily Challenge

One level per calendar date. The date is turned into a seed, so every
player gets the same level for the same day.
"""

import logging
from datetime import date
from typing import Optional

from .color_counts import calculate_color_counts
from .errors import ParameterError
from .generator import DEFAULT_PALETTE_SIZE, generate_level
from .puzzle import Puzzle
from .validator import validate_level


logger = logging.getLogger(__name__)


DAILY_GRID_SIZE = 8
DAILY_REDRAWS = 5
# Above any yyyymmdd seed, so a redraw never lands on another date's seed
RESEED_STRIDE = 100_000_000


def parse_date(date_string: str) -> date:
    try:
        return date.fromisoformat(date_string)
    except (TypeError, ValueError) as exc:
        raise ParameterError(f"Invalid date '{date_string}', expected YYYY-MM-DD") from exc


def date_to_seed(date_string: str) -> int:
    """'2024-01-15' -> 20240115"""
    day = parse_date(date_string)
    return day.year * 10000 + day.month * 100 + day.day


def today_date_string() -> str:
    """Local date as YYYY-MM-DD."""
    return date.today().isoformat()


def daily_puzzle(
    date_string: str,
    palette_size: Optional[int] = None,
    grid_size: int = DAILY_GRID_SIZE,
) -> Puzzle:
    """
    Level for a date. Same date and palette -> identical level.

    A generated level that fails validation is redrawn from a shifted seed,
    up to DAILY_REDRAWS times.
    """
    if palette_size is None:
        palette_size = DEFAULT_PALETTE_SIZE

    seed = date_to_seed(date_string)
    min_colors, max_colors = calculate_color_counts(grid_size, grid_size, palette_size)

    for redraw in range(DAILY_REDRAWS):
        draw_seed = seed + redraw * RESEED_STRIDE
        result = generate_level(
            grid_size,
            grid_size,
            min_colors,
            max_colors,
            palette_size=palette_size,
            seed=draw_seed,
        )
        validation = validate_level(result.puzzle)
        if validation["valid"]:
            break
        logger.warning(
            "[Daily] %s seed=%d rejected (%s): %s",
            date_string, draw_seed, validation["rule"], validation["error"],
        )

    logger.info(
        "[Daily] %s seed=%d colors=%d fallback=%s",
        date_string, draw_seed, result.puzzle.difficulty, result.used_fallback,
    )
    return result.puzzle
