import pytest

from flow_puzzle.services.errors import ParameterError
from flow_puzzle.services.grid import are_adjacent
from flow_puzzle.services.generator import generate_level
from flow_puzzle.services.validator import validate_level


def covered_cells(puzzle):
    return sorted(cell for path in puzzle.solved_paths for cell in path.cells)


def test_seeded_small_level_is_valid():
    result = generate_level(5, 5, 4, 5, None, seed=42)
    puzzle = result.puzzle

    assert (puzzle.width, puzzle.height) == (5, 5)
    assert 4 <= puzzle.difficulty <= 5
    assert validate_level(puzzle) == {"valid": True}


def test_same_seed_same_level():
    first = generate_level(6, 6, 4, 6, seed=7)
    second = generate_level(6, 6, 4, 6, seed=7)
    assert first.puzzle.to_dict() == second.puzzle.to_dict()
    assert first.used_fallback == second.used_fallback


def test_seed_zero_is_deterministic():
    assert generate_level(5, 5, 4, 5, seed=0).puzzle.to_dict() == generate_level(5, 5, 4, 5, seed=0).puzzle.to_dict()


def test_anchors_are_path_ends():
    puzzle = generate_level(7, 7, 5, 8, seed=5).puzzle
    for path in puzzle.solved_paths:
        assert puzzle.anchors[path.cells[0]].color_id == path.color_id
        assert puzzle.anchors[path.cells[-1]].color_id == path.color_id
        assert not are_adjacent(path.cells[0], path.cells[-1], puzzle.width)
    assert len(puzzle.anchors) == 2 * puzzle.difficulty


def test_color_ids_are_contiguous():
    puzzle = generate_level(6, 6, 4, 6, seed=11).puzzle
    assert [p.color_id for p in puzzle.solved_paths] == list(range(puzzle.difficulty))


@pytest.mark.parametrize("size,colors", [(5, (4, 5)), (8, (7, 11)), (10, (10, 16))])
def test_levels_cover_every_cell(size, colors):
    puzzle = generate_level(size, size, colors[0], colors[1], seed=size).puzzle
    assert covered_cells(puzzle) == list(range(size * size))


def test_zero_budget_uses_fallback():
    result = generate_level(6, 6, 4, 6, seed=3, attempt_budget=0)
    assert result.used_fallback
    assert covered_cells(result.puzzle) == list(range(36))
    assert validate_level(result.puzzle) == {"valid": True}


def test_unseeded_levels_are_full():
    puzzle = generate_level(5, 5, 4, 5).puzzle
    assert covered_cells(puzzle) == list(range(25))


@pytest.mark.parametrize("args", [
    (2, 5, 4, 5),
    (5, 5, 0, 5),
    (5, 5, 6, 5),
    (3, 3, 4, 4),
])
def test_bad_parameters_raise(args):
    with pytest.raises(ParameterError):
        generate_level(*args)


def test_palette_smaller_than_min_colors_raises():
    with pytest.raises(ParameterError):
        generate_level(6, 6, 5, 6, palette_size=4)


def test_negative_budget_raises():
    with pytest.raises(ParameterError):
        generate_level(5, 5, 4, 5, attempt_budget=-1)
