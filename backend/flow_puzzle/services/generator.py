"""
Flow Puzzle - Level Generator

Randomized incremental path growing:
- a new path starts at the sampled empty cell with the fewest free neighbors
- paths grow until stuck and never touch themselves
- on small grids a one-step lookahead avoids stranding empty cells
- when the attempt budget runs out the fallback generator takes over
"""

import logging
from typing import List, NamedTuple, Optional

from .errors import ParameterError, StuckAttempt
from .fallback import generate_fallback_level
from .grid import are_adjacent, neighbors
from .puzzle import Puzzle, build_puzzle
from .rng import SeededRandom, make_rng


logger = logging.getLogger(__name__)


# ============================================
# CONSTANTS
# ============================================

DEFAULT_PALETTE_SIZE = 20
DEFAULT_ATTEMPT_BUDGET = 2000

START_SAMPLE_SIZE = 15
MIN_PATH_CELLS = 3
# Dead-end lookahead only pays off below this many cells
LOOKAHEAD_MAX_CELLS = 400

EMPTY = -1


class GenerationResult(NamedTuple):
    puzzle: Puzzle
    used_fallback: bool


# ============================================
# PARAMETERS
# ============================================

def check_parameters(
    width: int,
    height: int,
    min_colors: int,
    max_colors: int,
    palette_size: int,
) -> None:
    """Raises ParameterError for inputs no generator can satisfy."""
    if width < 3 or height < 3:
        raise ParameterError(f"Grid must be at least 3x3, got {width}x{height}")
    if palette_size < 1:
        raise ParameterError("Palette is empty")
    if min_colors < 1:
        raise ParameterError(f"min_colors must be positive, got {min_colors}")
    if min_colors > max_colors:
        raise ParameterError(f"min_colors ({min_colors}) > max_colors ({max_colors})")
    if min_colors > palette_size:
        raise ParameterError(f"min_colors ({min_colors}) > palette size ({palette_size})")
    if min_colors * MIN_PATH_CELLS > width * height:
        raise ParameterError(
            f"{min_colors} colors cannot fit a {width}x{height} grid "
            f"with {MIN_PATH_CELLS}-cell paths"
        )


# ============================================
# PATH GROWTH
# ============================================

def pick_start_cell(
    empty_cells: set,
    grid: List[int],
    width: int,
    height: int,
    rng: SeededRandom,
) -> int:
    """Samples empty cells and keeps the most constrained one."""
    candidates = list(empty_cells)
    best_idx = -1
    best_free = 99

    for _ in range(min(len(candidates), START_SAMPLE_SIZE)):
        idx = candidates[rng.next_int(0, len(candidates) - 1)]
        free = sum(1 for n in neighbors(idx, width, height) if grid[n] == EMPTY)
        if free < best_free:
            best_free = free
            best_idx = idx

    return best_idx if best_idx != -1 else candidates[0]


def _touches_path(cell: int, color_id: int, tail: int, grid: List[int], width: int, height: int) -> bool:
    """True if cell borders a cell of this path other than the tail."""
    return any(
        grid[n] == color_id and n != tail
        for n in neighbors(cell, width, height)
    )


def _strands_neighbor(tail: int, nxt: int, grid: List[int], width: int, height: int) -> bool:
    """True if stepping tail -> nxt leaves an empty neighbor of tail with no way out."""
    for n in neighbors(tail, width, height):
        if n == nxt or grid[n] != EMPTY:
            continue
        exits = [nn for nn in neighbors(n, width, height) if grid[nn] == EMPTY and nn != nxt]
        if not exits:
            return True
    return False


def valid_moves(
    tail: int,
    color_id: int,
    grid: List[int],
    width: int,
    height: int,
) -> List[int]:
    lookahead = width * height < LOOKAHEAD_MAX_CELLS
    moves = []
    for nxt in neighbors(tail, width, height):
        if grid[nxt] != EMPTY:
            continue
        if _touches_path(nxt, color_id, tail, grid, width, height):
            continue
        if lookahead and _strands_neighbor(tail, nxt, grid, width, height):
            continue
        moves.append(nxt)
    return moves


def grow_path(
    start: int,
    color_id: int,
    grid: List[int],
    empty_cells: set,
    width: int,
    height: int,
    rng: SeededRandom,
) -> List[int]:
    """
    Grows one path from start until no valid move remains.

    Raises StuckAttempt when the path is too short or its endpoints end up
    adjacent with no way to extend.
    """
    path = [start]
    grid[start] = color_id
    empty_cells.discard(start)

    current = start
    while True:
        moves = valid_moves(current, color_id, grid, width, height)
        if not moves:
            break
        current = rng.choice(moves)
        grid[current] = color_id
        empty_cells.discard(current)
        path.append(current)

    if len(path) < MIN_PATH_CELLS:
        raise StuckAttempt(f"path {color_id} stopped at {len(path)} cells")

    if are_adjacent(path[0], path[-1], width):
        tail = path[-1]
        extensions = [
            n for n in neighbors(tail, width, height)
            if grid[n] == EMPTY and not _touches_path(n, color_id, tail, grid, width, height)
        ]
        if not extensions:
            raise StuckAttempt(f"path {color_id} has adjacent endpoints")
        extension = rng.choice(extensions)
        grid[extension] = color_id
        empty_cells.discard(extension)
        path.append(extension)

    return path


# ============================================
# ONE ATTEMPT
# ============================================

def anchors_are_separated(paths: List[List[int]], width: int) -> bool:
    """Same-color anchors must not be orthogonally adjacent."""
    return all(not are_adjacent(p[0], p[-1], width) for p in paths)


def attempt_level(
    width: int,
    height: int,
    min_colors: int,
    max_colors: int,
    palette_size: int,
    rng: SeededRandom,
) -> Optional[Puzzle]:
    """Runs one generation attempt. Returns None when the attempt fails."""
    size = width * height
    target_colors = rng.next_int(min_colors, min(max_colors, palette_size))

    grid = [EMPTY] * size
    empty_cells = set(range(size))
    paths: List[List[int]] = []

    try:
        while empty_cells and len(paths) < target_colors:
            start = pick_start_cell(empty_cells, grid, width, height, rng)
            paths.append(grow_path(start, len(paths), grid, empty_cells, width, height, rng))
    except StuckAttempt as exc:
        logger.debug("[Generator] attempt stuck: %s", exc)
        return None

    if empty_cells or len(paths) < min_colors:
        return None

    # Displayed color ids must not follow generation order
    color_assignments = rng.shuffle(list(range(target_colors)))
    if len(paths) != target_colors:
        return None

    if not anchors_are_separated(paths, width):
        return None

    return build_puzzle(
        width,
        height,
        ((color_assignments[i], path) for i, path in enumerate(paths)),
    )


# ============================================
# MAIN GENERATOR FUNCTION
# ============================================

def generate_level(
    width: int,
    height: int,
    min_colors: int,
    max_colors: int,
    palette_size: Optional[int] = None,
    seed: Optional[int] = None,
    attempt_budget: Optional[int] = None,
) -> GenerationResult:
    """
    Generates a level that fills the grid with min_colors..max_colors paths.

    Args:
        palette_size: number of available colors (None -> 20)
        seed: deterministic seed, None for a platform-random level
        attempt_budget: primary attempts before the fallback (None -> 2000)

    Returns:
        GenerationResult(puzzle, used_fallback)
    """
    if palette_size is None:
        palette_size = DEFAULT_PALETTE_SIZE
    if attempt_budget is None:
        attempt_budget = DEFAULT_ATTEMPT_BUDGET
    if attempt_budget < 0:
        raise ParameterError(f"attempt_budget must not be negative, got {attempt_budget}")
    check_parameters(width, height, min_colors, max_colors, palette_size)

    rng = make_rng(seed)

    for attempt in range(attempt_budget):
        puzzle = attempt_level(width, height, min_colors, max_colors, palette_size, rng)
        if puzzle is not None:
            logger.debug(
                "[Generator] %dx%d colors=%d attempts=%d seed=%s",
                width, height, puzzle.difficulty, attempt + 1, seed,
            )
            return GenerationResult(puzzle, False)

    logger.warning(
        "[Generator] %dx%d exhausted %d attempts (seed=%s), using fallback",
        width, height, attempt_budget, seed,
    )
    puzzle = generate_fallback_level(width, height, min_colors, max_colors, palette_size, rng)
    return GenerationResult(puzzle, True)
