import pytest

from flow_puzzle.services.fallback import (
    UNASSIGNED, backbite, comb_paths, generate_fallback_level, linearize_region,
    merge_small_regions, region_targets, strip_level, strip_paths,
)
from flow_puzzle.services.grid import are_adjacent
from flow_puzzle.services.puzzle import build_puzzle
from flow_puzzle.services.rng import SeededRandom
from flow_puzzle.services.validator import validate_level


def assert_legal_level(puzzle):
    assert validate_level(puzzle) == {"valid": True}
    assert len(puzzle.anchors) == 2 * puzzle.difficulty
    for path in puzzle.solved_paths:
        assert len(path.cells) >= 3
        assert not are_adjacent(path.cells[0], path.cells[-1], puzzle.width)
    cells = sorted(c for p in puzzle.solved_paths for c in p.cells)
    assert cells == list(range(puzzle.size))


def test_region_targets_spread_remainder():
    assert region_targets(10, 3) == [4, 3, 3]
    assert sum(region_targets(64, 9)) == 64


def test_linearize_rectangle_visits_every_cell_once():
    # 3x2 block in the top-left of a 5x5 grid
    region = [0, 1, 2, 5, 6, 7]
    path = linearize_region(region, 5, 5)
    assert sorted(path) == region
    assert all(are_adjacent(a, b, 5) for a, b in zip(path, path[1:]))


def test_merge_small_regions_folds_into_neighbor():
    # 4x3 grid: rows 0-1 one region, cells 8 and 9 alone, 10-11 a pair
    regions = [[0, 1, 2, 3, 4, 5, 6, 7], [8], [9], [10, 11]]
    owner = [0] * 8 + [1, 2, 3, 3]
    merged = merge_small_regions(regions, owner, 4, 3)
    assert all(len(region) >= 3 for region in merged)
    assert sorted(c for region in merged for c in region) == list(range(12))
    for region_id, region in enumerate(merged):
        assert all(owner[cell] == region_id for cell in region)
    assert UNASSIGNED not in owner


@pytest.mark.parametrize("width,height,seed", [
    (5, 5, 1), (6, 6, 2), (8, 8, 3), (9, 7, 4), (20, 20, 5), (40, 40, 6),
])
def test_fallback_levels_are_legal(width, height, seed):
    puzzle = generate_fallback_level(width, height, 4, 8, 20, SeededRandom(seed))
    assert_legal_level(puzzle)


@pytest.mark.parametrize("seed", range(10))
def test_fallback_levels_are_legal_across_seeds(seed):
    assert_legal_level(generate_fallback_level(8, 8, 7, 11, 20, SeededRandom(seed)))
    assert_legal_level(generate_fallback_level(6, 6, 4, 7, 20, SeededRandom(seed)))


def test_fallback_large_grid_color_count():
    puzzle = generate_fallback_level(40, 40, 16, 20, 20, SeededRandom(8))
    assert_legal_level(puzzle)
    # comb layout over 40 rows needs one serpentine plus 20 odd rows
    assert puzzle.difficulty <= 21


def test_fallback_color_ids_and_anchors():
    puzzle = generate_fallback_level(8, 8, 7, 11, 20, SeededRandom(99))
    assert [p.color_id for p in puzzle.solved_paths] == list(range(puzzle.difficulty))
    assert 1 <= puzzle.difficulty <= 11
    for path in puzzle.solved_paths:
        assert puzzle.anchors[path.cells[0]].color_id == path.color_id
        assert puzzle.anchors[path.cells[-1]].color_id == path.color_id


def test_fallback_caps_colors_to_grid():
    # 3x3 fits at most three 3-cell paths
    puzzle = generate_fallback_level(3, 3, 3, 9, 20, SeededRandom(5))
    assert puzzle.difficulty <= 3
    assert_legal_level(puzzle)


def test_fallback_is_deterministic():
    a = generate_fallback_level(7, 7, 5, 8, 20, SeededRandom(12))
    b = generate_fallback_level(7, 7, 5, 8, 20, SeededRandom(12))
    assert a.to_dict() == b.to_dict()


def test_strip_paths_hit_requested_count():
    paths = strip_paths(9, 6, 10, SeededRandom(3))
    assert len(paths) == 10
    assert all(len(path) >= 3 for path in paths)
    assert sorted(c for path in paths for c in path) == list(range(54))


def test_comb_paths_form_a_legal_level():
    paths = comb_paths(8, 8)
    # one serpentine plus the four odd rows
    assert len(paths) == 5
    assert_legal_level(build_puzzle(8, 8, enumerate(paths)))


def test_comb_paths_on_tall_grid():
    paths = comb_paths(5, 11)
    assert_legal_level(build_puzzle(5, 11, enumerate(paths)))


def test_backbite_keeps_levels_legal():
    paths = strip_paths(10, 10, 20, SeededRandom(4))
    backbite(paths, 10, 10, SeededRandom(4), 500)
    assert_legal_level(build_puzzle(10, 10, enumerate(paths)))


@pytest.mark.parametrize("width,height,colors", [(3, 3, 3), (4, 9, 3), (12, 12, 6), (40, 40, 20)])
def test_strip_level_is_legal(width, height, colors):
    assert_legal_level(strip_level(width, height, colors, SeededRandom(width * height)))
