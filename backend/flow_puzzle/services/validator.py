"""
Flow Puzzle - Level Validation

The rule set every level must satisfy, regardless of which generator built
it. The first violated rule is reported.

Rules:
1. anchor-pairs     every color has exactly two anchors
2. path-endpoints   each color's path runs anchor to anchor (distinct, not adjacent)
3. anchor-interior  no anchor sits inside a path
4. disjoint         no cell belongs to two paths
5. coverage         every cell is covered
6. non-branching    paths are simple chains
7. no-u-turn        no path steps straight back
"""

from typing import Dict, Mapping, Optional, Sequence

from .grid import are_adjacent, neighbors
from .puzzle import Puzzle


def _fail(rule: str, error: str) -> Dict:
    return {"valid": False, "rule": rule, "error": error}


def _check_anchor_pairs(puzzle: Puzzle, colors: Dict[int, list]) -> Optional[Dict]:
    if not puzzle.solved_paths:
        return _fail("anchor-pairs", "No solved paths found")

    for color_id, cells in sorted(colors.items()):
        if len(cells) != 2:
            return _fail("anchor-pairs", f"Color {color_id} must have exactly 2 anchors, has {len(cells)}")

    path_colors = [p.color_id for p in puzzle.solved_paths]
    if len(path_colors) != len(set(path_colors)):
        return _fail("anchor-pairs", "A color has more than one solution path")
    if len(path_colors) != puzzle.difficulty or set(path_colors) != set(range(puzzle.difficulty)):
        return _fail("anchor-pairs", f"Solution colors {sorted(path_colors)} do not match difficulty {puzzle.difficulty}")
    if set(colors) != set(path_colors):
        return _fail("anchor-pairs", f"Anchor colors {sorted(colors)} do not match solution colors")
    return None


def _check_endpoints(puzzle: Puzzle, colors: Dict[int, list]) -> Optional[Dict]:
    for color_id, anchor_cells in sorted(colors.items()):
        path = puzzle.path_for(color_id)
        if path is None or len(path.cells) < 2:
            return _fail("path-endpoints", f"Color {color_id} has no valid path")

        start, end = path.cells[0], path.cells[-1]
        if start not in anchor_cells or end not in anchor_cells:
            return _fail("path-endpoints", f"Color {color_id} anchors not at path endpoints")
        if start == end:
            return _fail("path-endpoints", f"Color {color_id} has same start and end anchor")
        if are_adjacent(start, end, puzzle.width):
            return _fail("path-endpoints", f"Color {color_id} anchors are adjacent")
    return None


def _check_anchor_interior(puzzle: Puzzle) -> Optional[Dict]:
    for path in puzzle.solved_paths:
        for cell in path.cells[1:-1]:
            if cell in puzzle.anchors:
                return _fail("anchor-interior", f"Color {path.color_id} passes through anchor at cell {cell}")
    return None


def _check_disjoint(puzzle: Puzzle) -> Optional[Dict]:
    seen: Dict[int, int] = {}
    for path in puzzle.solved_paths:
        for cell in path.cells:
            if not 0 <= cell < puzzle.size:
                return _fail("disjoint", f"Color {path.color_id} leaves the grid at cell {cell}")
            if cell in seen:
                return _fail("disjoint", f"Paths overlap at cell {cell}")
            seen[cell] = path.color_id
    return None


def _check_coverage(puzzle: Puzzle) -> Optional[Dict]:
    filled = sum(len(p.cells) for p in puzzle.solved_paths)
    if filled != puzzle.size:
        return _fail("coverage", f"Grid not fully filled: {filled}/{puzzle.size} cells")
    return None


def _check_non_branching(puzzle: Puzzle) -> Optional[Dict]:
    width, height = puzzle.width, puzzle.height
    for path in puzzle.solved_paths:
        cells = path.cells
        for a, b in zip(cells, cells[1:]):
            if not are_adjacent(a, b, width):
                return _fail("non-branching", f"Path for color {path.color_id} jumps from cell {a} to {b}")

        members = set(cells)
        last = len(cells) - 1
        for i, cell in enumerate(cells):
            linked = sum(1 for n in neighbors(cell, width, height) if n in members)
            expected = 1 if i in (0, last) else 2
            if linked != expected:
                where = "endpoint" if expected == 1 else f"cell {cell}"
                return _fail("non-branching", f"Path for color {path.color_id} has branching at {where}")
    return None


def _check_u_turns(puzzle: Puzzle) -> Optional[Dict]:
    for path in puzzle.solved_paths:
        cells = path.cells
        for i in range(1, len(cells) - 1):
            if cells[i - 1] == cells[i + 1]:
                return _fail("no-u-turn", f"Path for color {path.color_id} contains U-turn at cell {cells[i]}")
    return None


def validate_level(puzzle: Puzzle) -> Dict:
    """
    Checks a level against the rules.

    Returns:
        {"valid": True} or {"valid": False, "rule": str, "error": str}
    """
    colors = puzzle.anchors_by_color()
    checks = (
        lambda: _check_anchor_pairs(puzzle, colors),
        lambda: _check_endpoints(puzzle, colors),
        lambda: _check_anchor_interior(puzzle),
        lambda: _check_disjoint(puzzle),
        lambda: _check_coverage(puzzle),
        lambda: _check_non_branching(puzzle),
        lambda: _check_u_turns(puzzle),
    )
    for check in checks:
        failure = check()
        if failure:
            return failure
    return {"valid": True}


# ============================================
# COMPLETION CHECK (player paths)
# ============================================

def check_completion(puzzle: Puzzle, player_paths: Mapping[int, Sequence[int]]) -> Dict:
    """
    Decides whether the player's paths solve the level.

    Any routing is accepted as long as every cell is used once and each
    color joins its two anchors.

    Returns:
        {"complete": True} or {"complete": False, "error": str}
    """
    filled = set()
    for color_id, cells in player_paths.items():
        for cell in cells:
            if cell in filled:
                return {"complete": False, "error": f"Cell {cell} is used twice"}
            filled.add(cell)

    if len(filled) != puzzle.size or any(not 0 <= c < puzzle.size for c in filled):
        return {"complete": False, "error": f"Grid not filled: {len(filled)}/{puzzle.size} cells"}

    for color_id, anchor_cells in sorted(puzzle.anchors_by_color().items()):
        cells = list(player_paths.get(color_id) or [])
        if not cells:
            return {"complete": False, "error": f"Color {color_id} is not connected"}

        start, end = cells[0], cells[-1]
        if start not in anchor_cells or end not in anchor_cells or start == end:
            return {"complete": False, "error": f"Color {color_id} does not join its anchors"}

        for a, b in zip(cells, cells[1:]):
            if not are_adjacent(a, b, puzzle.width):
                return {"complete": False, "error": f"Color {color_id} is broken between cells {a} and {b}"}

        for cell in cells[1:-1]:
            if cell in puzzle.anchors:
                return {"complete": False, "error": f"Color {color_id} crosses anchor at cell {cell}"}

    return {"complete": True}
