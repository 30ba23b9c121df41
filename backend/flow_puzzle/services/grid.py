"""
Flow Puzzle - Grid Helpers

Cells are addressed by a linear index: row = idx // width, col = idx % width.
The grid itself is never materialized as a 2D structure.
"""

from typing import List, Tuple


def position_of(idx: int, width: int) -> Tuple[int, int]:
    """(row, col) of a cell index."""
    return idx // width, idx % width


def index_of(row: int, col: int, width: int) -> int:
    """Cell index of (row, col)."""
    return row * width + col


def neighbors(idx: int, width: int, height: int) -> List[int]:
    """Orthogonal in-bounds neighbors: up, down, left, right."""
    result = []
    row, col = idx // width, idx % width
    if row > 0:
        result.append(idx - width)
    if row < height - 1:
        result.append(idx + width)
    if col > 0:
        result.append(idx - 1)
    if col < width - 1:
        result.append(idx + 1)
    return result


def manhattan(a: int, b: int, width: int) -> int:
    """Manhattan distance between two cells."""
    r1, c1 = position_of(a, width)
    r2, c2 = position_of(b, width)
    return abs(r1 - r2) + abs(c1 - c2)


def are_adjacent(a: int, b: int, width: int) -> bool:
    """True when two cells share an edge."""
    return manhattan(a, b, width) == 1


def is_boundary(idx: int, width: int, height: int) -> bool:
    """True for cells on the outer ring of the grid."""
    row, col = position_of(idx, width)
    return row == 0 or row == height - 1 or col == 0 or col == width - 1
