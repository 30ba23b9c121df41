"""
Flow Puzzle - Hints

A hint reveals the canonical path of the first color (by id) the player
has not drawn exactly as the solution.
"""

from typing import Mapping, Optional, Sequence

from .puzzle import ColorPath, Puzzle


def next_hint(puzzle: Puzzle, player_paths: Mapping[int, Sequence[int]]) -> Optional[ColorPath]:
    for solution in sorted(puzzle.solved_paths, key=lambda p: p.color_id):
        drawn = tuple(player_paths.get(solution.color_id) or ())
        if drawn != solution.cells:
            return solution
    return None
