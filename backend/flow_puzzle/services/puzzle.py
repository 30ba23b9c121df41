"""
Flow Puzzle - Level Data

A Puzzle is immutable once produced: regeneration replaces it wholesale.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


ENDPOINT = "endpoint"


@dataclass(frozen=True)
class Anchor:
    """One endpoint of a color's path."""
    color_id: int
    kind: str = ENDPOINT


@dataclass(frozen=True)
class ColorPath:
    """Ordered cells of one color, anchor to anchor."""
    color_id: int
    cells: Tuple[int, ...]

    @property
    def moves(self) -> int:
        return max(0, len(self.cells) - 1)


@dataclass(frozen=True)
class Puzzle:
    width: int
    height: int
    anchors: Mapping[int, Anchor]
    difficulty: int
    solved_paths: Tuple[ColorPath, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "anchors", MappingProxyType(dict(self.anchors)))
        object.__setattr__(self, "solved_paths", tuple(self.solved_paths))

    @property
    def size(self) -> int:
        return self.width * self.height

    @property
    def min_moves(self) -> int:
        """Moves needed to draw the canonical solution."""
        return sum(p.moves for p in self.solved_paths)

    def path_for(self, color_id: int) -> Optional[ColorPath]:
        for path in self.solved_paths:
            if path.color_id == color_id:
                return path
        return None

    def anchors_by_color(self) -> Dict[int, List[int]]:
        """color_id -> anchor cells, in ascending cell order."""
        grouped: Dict[int, List[int]] = {}
        for cell in sorted(self.anchors):
            grouped.setdefault(self.anchors[cell].color_id, []).append(cell)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation."""
        return {
            "width": self.width,
            "height": self.height,
            "difficulty": self.difficulty,
            "anchors": {
                str(cell): {"color_id": anchor.color_id, "type": anchor.kind}
                for cell, anchor in sorted(self.anchors.items())
            },
            "solved_paths": [
                {"color_id": p.color_id, "path": list(p.cells)}
                for p in self.solved_paths
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Puzzle":
        anchors = {
            int(cell): Anchor(int(raw["color_id"]), raw.get("type", ENDPOINT))
            for cell, raw in data.get("anchors", {}).items()
        }
        paths = [
            ColorPath(int(raw["color_id"]), tuple(int(c) for c in raw["path"]))
            for raw in data.get("solved_paths") or []
        ]
        return cls(
            width=int(data["width"]),
            height=int(data["height"]),
            anchors=anchors,
            difficulty=int(data.get("difficulty", len(paths))),
            solved_paths=tuple(paths),
        )


def build_puzzle(width: int, height: int, paths: Iterable[Tuple[int, Sequence[int]]]) -> Puzzle:
    """
    Assembles a Puzzle from (color_id, cells) pairs.

    Anchors are taken from each path's first and last cell; paths are
    stored ordered by color id.
    """
    solved = sorted(
        (ColorPath(color_id, tuple(cells)) for color_id, cells in paths),
        key=lambda p: p.color_id,
    )
    anchors: Dict[int, Anchor] = {}
    for path in solved:
        anchors[path.cells[0]] = Anchor(path.color_id)
        anchors[path.cells[-1]] = Anchor(path.color_id)
    return Puzzle(
        width=width,
        height=height,
        anchors=anchors,
        difficulty=len(solved),
        solved_paths=tuple(solved),
    )
