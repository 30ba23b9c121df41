from flow_puzzle.services import color_counts, generator
from flow_puzzle.services.color_counts import calculate_color_counts, get_cells_per_color


def test_small_grids():
    assert get_cells_per_color(5, 5) == (6, 10)
    assert calculate_color_counts(5, 5) == (4, 5)
    assert calculate_color_counts(8, 8) == (7, 11)


def test_size_bands():
    assert get_cells_per_color(10, 10) == (6, 9)
    assert get_cells_per_color(11, 8) == (6, 9)
    assert get_cells_per_color(12, 12) == (6, 8)
    assert get_cells_per_color(16, 13) == (6, 7)
    assert get_cells_per_color(30, 30) == (6, 6)


def test_at_least_four_colors():
    assert calculate_color_counts(3, 3)[0] == 4


def test_capped_to_palette():
    assert calculate_color_counts(20, 20, palette_size=20) == (15, 20)
    assert calculate_color_counts(20, 20, palette_size=4) == (4, 4)


def test_default_palette_shared_with_generator():
    assert color_counts.DEFAULT_PALETTE_SIZE is generator.DEFAULT_PALETTE_SIZE
    assert calculate_color_counts(40, 40) == calculate_color_counts(40, 40, generator.DEFAULT_PALETTE_SIZE)
