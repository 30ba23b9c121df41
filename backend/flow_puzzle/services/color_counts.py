"""
Flow Puzzle - Color Count Heuristic

Picks a color range for a grid from a cells-per-color band. Smaller grids
get longer paths, bigger grids denser ones.
"""

import math
from typing import Tuple

from .generator import DEFAULT_PALETTE_SIZE


MID_SIZES = ((8, 11), (10, 10), (9, 12), (11, 11), (10, 13))
LARGE_SIZES = ((12, 12), (11, 14), (13, 13), (12, 15), (14, 14))
XLARGE_SIZES = ((13, 16), (15, 15), (14, 17), (15, 18), (16, 19))


def _matches_size(width: int, height: int, sizes) -> bool:
    return any((width, height) in ((w, h), (h, w)) for w, h in sizes)


def get_cells_per_color(width: int, height: int) -> Tuple[int, int]:
    """(min_cells_per_color, max_cells_per_color) for a grid."""
    if max(width, height) <= 9:
        return 6, 10
    if _matches_size(width, height, MID_SIZES):
        return 6, 9
    if _matches_size(width, height, LARGE_SIZES):
        return 6, 8
    if _matches_size(width, height, XLARGE_SIZES):
        return 6, 7
    return 6, 6


def calculate_color_counts(
    width: int,
    height: int,
    palette_size: int = DEFAULT_PALETTE_SIZE,
) -> Tuple[int, int]:
    """
    (min_colors, max_colors) for a grid.

    At least 4 colors. When the density band asks for more colors than the
    palette holds, the whole palette is used with a 75% floor.
    """
    total = width * height
    min_cells, max_cells = get_cells_per_color(width, height)

    min_c = max(4, math.ceil(total / max_cells))
    max_c = math.ceil(total / min_cells)

    if max_c > palette_size:
        return max(4, math.floor(palette_size * 0.75)), palette_size

    return min_c, min(palette_size, max(min_c, max_c))
