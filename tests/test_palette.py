"""Tests for palette module."""
from plankulator.palette import DISTINCT_COLORS, color_key, piece_color


def test_same_cut_same_color():
    assert piece_color(600, 300, 18) == piece_color(600.0, 300.0, 18.0)


def test_color_from_palette():
    assert piece_color(1234.5, 300, 18) in DISTINCT_COLORS


def test_independent_of_call_order():
    sizes = [(600, 300, 18), (800, 300, 18), (450, 200, 18), (2000, 400, 37)]
    forward = [piece_color(*s) for s in sizes]
    backward = [piece_color(*s) for s in reversed(sizes)]
    assert forward == list(reversed(backward))


def test_sizes_spread_over_palette():
    colors = {piece_color(100 + i * 50, 300, 18) for i in range(12)}
    assert len(colors) > 1


def test_key_format():
    assert color_key(600.0, 300.5, 18) == "600×300.5×18"


def test_palette_size():
    assert len(DISTINCT_COLORS) == 30
    assert len(set(DISTINCT_COLORS)) == 30
