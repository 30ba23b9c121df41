"""
Flow Puzzle - Fallback Level Generator

Used when the primary generator runs out of attempts. Every level it returns
covers the grid and passes validation.

Phases:
1. Partition the grid into one region per color with a biased ("snake") DFS
2. Hand unassigned cells to the region whose center is nearest, then fold
   regions too small for a path into a neighbor
3. Turn each region into a single path with a depth-first walk
4. Validate; after a bounded number of rejected draws, use a strip layout
"""

import logging
from typing import Dict, List

from .grid import are_adjacent, index_of, is_boundary, manhattan, neighbors, position_of
from .puzzle import Puzzle, build_puzzle
from .rng import SeededRandom
from .validator import validate_level


logger = logging.getLogger(__name__)


# ============================================
# CONSTANTS
# ============================================

UNASSIGNED = -1
MIN_PATH_CELLS = 3
SNAKE_TURN_CHANCE = 0.3
FALLBACK_REDRAWS = 8
BACKBITE_ROUNDS_PER_CELL = 2

# 0: right, 1: down, 2: left, 3: up
SNAKE_DIRECTIONS = 4


def _in_snake_direction(current: int, nxt: int, direction: int, width: int) -> bool:
    r, c = position_of(current, width)
    nr, nc = position_of(nxt, width)
    if direction == 0:
        return nc > c
    if direction == 1:
        return nr > r
    if direction == 2:
        return nc < c
    return nr < r


# ============================================
# PHASE 1: SNAKE PARTITION
# ============================================

def region_targets(size: int, num_colors: int) -> List[int]:
    """Per-region sizes summing to size; the first size % n regions get one extra."""
    base, remainder = divmod(size, num_colors)
    return [base + (1 if i < remainder else 0) for i in range(num_colors)]


def partition_regions(
    width: int,
    height: int,
    num_colors: int,
    owner: List[int],
    rng: SeededRandom,
) -> List[List[int]]:
    """Grows one DFS region per color, preferring the current snake direction."""
    size = width * height
    regions: List[List[int]] = []

    for color_id, target in enumerate(region_targets(size, num_colors)):
        start = next((i for i in range(size) if owner[i] == UNASSIGNED), -1)
        if start == -1:
            break

        region: List[int] = []
        stack = [start]
        direction = rng.next_int(0, SNAKE_DIRECTIONS - 1)

        while stack and len(region) < target:
            current = stack.pop()
            if owner[current] != UNASSIGNED:
                continue
            owner[current] = color_id
            region.append(current)

            preferred = []
            others = []
            for n in neighbors(current, width, height):
                if owner[n] != UNASSIGNED:
                    continue
                if _in_snake_direction(current, n, direction, width):
                    preferred.append(n)
                else:
                    others.append(n)

            # Stack is LIFO: preferred cells go on top
            stack.extend(rng.shuffle(others))
            stack.extend(preferred)

            if rng.next() < SNAKE_TURN_CHANCE:
                direction = rng.next_int(0, SNAKE_DIRECTIONS - 1)

        regions.append(region)

    return regions


# ============================================
# PHASE 2: REMAINDER ASSIGNMENT
# ============================================

def assign_remainder(regions: List[List[int]], owner: List[int], width: int) -> None:
    """Every unassigned cell joins the region with the nearest center cell."""
    centers = [(i, region[len(region) // 2]) for i, region in enumerate(regions) if region]
    for cell in range(len(owner)):
        if owner[cell] != UNASSIGNED:
            continue
        nearest = min(centers, key=lambda item: manhattan(cell, item[1], width))[0]
        owner[cell] = nearest
        regions[nearest].append(cell)


def merge_small_regions(
    regions: List[List[int]],
    owner: List[int],
    width: int,
    height: int,
) -> List[List[int]]:
    """
    Folds every region under MIN_PATH_CELLS cells into a region it borders.
    Returns the surviving regions; owner is renumbered to match.
    """
    changed = True
    while changed:
        changed = False
        for i, region in enumerate(regions):
            if not region or len(region) >= MIN_PATH_CELLS:
                continue
            target = next(
                (owner[n] for cell in region for n in neighbors(cell, width, height) if owner[n] != i),
                None,
            )
            if target is None:
                continue
            for cell in region:
                owner[cell] = target
            regions[target].extend(region)
            regions[i] = []
            changed = True

    survivors = [region for region in regions if region]
    for new_id, region in enumerate(survivors):
        for cell in region:
            owner[cell] = new_id
    return survivors


# ============================================
# PHASE 3: LINEARIZATION
# ============================================

def _free_in_region(cell: int, region_set: set, visited: set, width: int, height: int) -> List[int]:
    return [n for n in neighbors(cell, width, height) if n in region_set and n not in visited]


def _attach(path: List[int], cell: int, width: int) -> bool:
    """Adds cell at a path end it borders. False when it borders neither end."""
    if are_adjacent(cell, path[-1], width):
        path.append(cell)
        return True
    if are_adjacent(cell, path[0], width):
        path.insert(0, cell)
        return True
    return False


def _splice(path: List[int], cell: int, width: int, height: int) -> None:
    """Inserts cell after the first path cell it borders, or appends it."""
    placed = set(path)
    for n in neighbors(cell, width, height):
        if n in placed:
            path.insert(path.index(n) + 1, cell)
            return
    path.append(cell)


def linearize_region(region: List[int], width: int, height: int) -> List[int]:
    """
    Walks a region depth-first from a boundary cell, always stepping to the
    neighbor with the fewest onward options. Unreached cells are attached to
    a path end when possible, otherwise spliced in.
    """
    region_set = set(region)
    start = next((c for c in region if is_boundary(c, width, height)), region[0])

    path = [start]
    visited = {start}
    current = start
    while True:
        options = _free_in_region(current, region_set, visited, width, height)
        if not options:
            break
        current = min(options, key=lambda n: len(_free_in_region(n, region_set, visited, width, height)))
        visited.add(current)
        path.append(current)

    remaining = [c for c in region if c not in visited]
    progress = True
    while remaining and progress:
        progress = False
        still_remaining = []
        for cell in remaining:
            if _attach(path, cell, width):
                progress = True
            else:
                still_remaining.append(cell)
        remaining = still_remaining

    for cell in remaining:
        _splice(path, cell, width, height)

    return path


# ============================================
# ANCHOR REPAIR
# ============================================

def repair_adjacent_anchors(
    color_id: int,
    paths: Dict[int, List[int]],
    owner: List[int],
    width: int,
    height: int,
) -> bool:
    """
    Truncates a path whose endpoints touch at the first cell (from the far
    end inward) that is not adjacent to the first anchor. Cut-off cells go
    to bordering paths of other colors and owner is updated. Returns False
    if the path had to be left as is.
    """
    path = paths[color_id]
    cut = next(
        (i for i in range(len(path) - 2, 0, -1) if not are_adjacent(path[0], path[i], width)),
        -1,
    )
    if cut + 1 < MIN_PATH_CELLS:
        return False

    tail = path[cut + 1:]
    tail_set = set(tail)
    homes = {}
    for cell in tail:
        others = [
            owner[n] for n in neighbors(cell, width, height)
            if n not in tail_set and owner[n] != color_id
        ]
        if not others:
            return False
        homes[cell] = others[0]

    paths[color_id] = path[:cut + 1]
    for cell in tail:
        target = paths[homes[cell]]
        if not _attach(target, cell, width):
            _splice(target, cell, width, height)
        owner[cell] = homes[cell]
    return True


def draw_partition_level(width: int, height: int, num_colors: int, rng: SeededRandom) -> Puzzle:
    """One pass of phases 1-3. The result is not validated."""
    owner = [UNASSIGNED] * (width * height)
    regions = partition_regions(width, height, num_colors, owner, rng)
    assign_remainder(regions, owner, width)
    regions = merge_small_regions(regions, owner, width, height)

    paths: Dict[int, List[int]] = {
        color_id: linearize_region(region, width, height)
        for color_id, region in enumerate(regions)
    }

    for color_id in list(paths):
        path = paths[color_id]
        if len(path) >= MIN_PATH_CELLS and are_adjacent(path[0], path[-1], width):
            if not repair_adjacent_anchors(color_id, paths, owner, width, height):
                logger.debug("[Fallback] color %d keeps adjacent anchors", color_id)

    color_assignments = rng.shuffle(list(range(len(paths))))
    return build_puzzle(
        width,
        height,
        ((color_assignments[i], path) for i, path in enumerate(paths.values())),
    )


# ============================================
# STRIP LAYOUT
# ============================================

def _lines(width: int, height: int, vertical: bool) -> List[List[int]]:
    if vertical:
        return [[index_of(r, c, width) for r in range(height)] for c in range(width)]
    return [[index_of(r, c, width) for c in range(width)] for r in range(height)]


def _split_line(line: List[int], pieces: int) -> List[List[int]]:
    base, extra = divmod(len(line), pieces)
    result = []
    start = 0
    for i in range(pieces):
        length = base + (1 if i < extra else 0)
        result.append(line[start:start + length])
        start += length
    return result


def strip_paths(width: int, height: int, num_colors: int, rng: SeededRandom) -> List[List[int]]:
    """
    Cuts full rows (or columns) into straight segments of at least
    MIN_PATH_CELLS cells. The orientation whose achievable color range
    comes closest to num_colors wins; rows on a tie.
    """
    best = None
    for vertical in (False, True):
        lines = _lines(width, height, vertical)
        capacity = len(lines[0]) // MIN_PATH_CELLS
        target = min(max(num_colors, len(lines)), len(lines) * capacity)
        if best is None or abs(target - num_colors) < best[0]:
            best = (abs(target - num_colors), lines, capacity, target)
    _, lines, capacity, target = best

    pieces = [1] * len(lines)
    order = rng.shuffle(list(range(len(lines))))
    remaining = target - len(lines)
    while remaining > 0:
        for i in order:
            if remaining == 0:
                break
            if pieces[i] < capacity:
                pieces[i] += 1
                remaining -= 1

    return [segment for line, count in zip(lines, pieces) for segment in _split_line(line, count)]


def comb_paths(width: int, height: int) -> List[List[int]]:
    """
    One serpentine over every other line, joined by a single connector cell
    in each line between; what is left of those lines becomes straight
    paths. Lines run along the longer side, which needs more than
    MIN_PATH_CELLS cells.
    """
    lines = _lines(width, height, height > width)
    serpentine: List[int] = []
    separators = []
    for k, line in enumerate(lines):
        forward = (k // 2) % 2 == 0
        if k % 2 == 0:
            serpentine.extend(line if forward else reversed(line))
        elif k + 1 < len(lines):
            # Connector sits where the previous sweep ended
            serpentine.append(line[-1] if forward else line[0])
            separators.append(line[:-1] if forward else line[1:])
        else:
            separators.append(list(line))
    return [serpentine] + separators


def backbite(paths: List[List[int]], width: int, height: int, rng: SeededRandom, rounds: int) -> None:
    """
    Bends legal paths by moving one end cell from a path to the bordering
    end of another. A move is kept only if both paths stay legal: the donor
    keeps MIN_PATH_CELLS cells with non-adjacent ends, and the new end cell
    touches nothing of the growing path but its old end.
    """
    owner = [0] * (width * height)
    for i, path in enumerate(paths):
        for cell in path:
            owner[cell] = i

    for _ in range(rounds):
        i = rng.next_int(0, len(paths) - 1)
        grower = paths[i]
        if rng.next() < 0.5:
            grower.reverse()
        end = grower[-1]

        candidates = []
        for n in neighbors(end, width, height):
            donor = paths[owner[n]]
            if owner[n] == i or len(donor) <= MIN_PATH_CELLS:
                continue
            if n == donor[0] or n == donor[-1]:
                candidates.append(n)
        if not candidates:
            continue

        cell = rng.choice(candidates)
        j = owner[cell]
        if any(owner[m] == i and m != end for m in neighbors(cell, width, height)):
            continue
        rest = paths[j][1:] if paths[j][0] == cell else paths[j][:-1]
        if are_adjacent(rest[0], rest[-1], width):
            continue

        grower.append(cell)
        paths[j] = rest
        owner[cell] = i


def strip_level(width: int, height: int, num_colors: int, rng: SeededRandom) -> Puzzle:
    """
    Legal by construction: straight segments, or a comb when fewer colors
    than the shorter side are wanted. Backbite moves then bend the paths.
    """
    if num_colors < min(width, height) and max(width, height) > MIN_PATH_CELLS:
        paths = comb_paths(width, height)
    else:
        paths = strip_paths(width, height, num_colors, rng)
    backbite(paths, width, height, rng, BACKBITE_ROUNDS_PER_CELL * width * height)
    color_assignments = rng.shuffle(list(range(len(paths))))
    return build_puzzle(width, height, ((color_assignments[i], path) for i, path in enumerate(paths)))


# ============================================
# MAIN FALLBACK FUNCTION
# ============================================

def generate_fallback_level(
    width: int,
    height: int,
    min_colors: int,
    max_colors: int,
    palette_size: int,
    rng: SeededRandom,
) -> Puzzle:
    """Builds a full-coverage level that passes validate_level."""
    size = width * height
    num_colors = min(palette_size, max(min_colors, rng.next_int(min_colors, max_colors)))
    num_colors = max(1, min(num_colors, size // MIN_PATH_CELLS))

    for draw in range(1, FALLBACK_REDRAWS + 1):
        puzzle = draw_partition_level(width, height, num_colors, rng)
        validation = validate_level(puzzle)
        if validation["valid"]:
            logger.info(
                "[Fallback] %dx%d partition draw %d colors=%d",
                width, height, draw, puzzle.difficulty,
            )
            return puzzle
        logger.debug("[Fallback] draw %d rejected (%s): %s", draw, validation["rule"], validation["error"])

    puzzle = strip_level(width, height, num_colors, rng)
    logger.info(
        "[Fallback] %dx%d strip layout after %d rejected draws, colors=%d",
        width, height, FALLBACK_REDRAWS, puzzle.difficulty,
    )
    if puzzle.difficulty > palette_size:
        logger.warning(
            "[Fallback] %dx%d strip layout needs %d colors, palette has %d",
            width, height, puzzle.difficulty, palette_size,
        )
    return puzzle
