"""Tests for stroke interpolation, brush stamping and flood fill."""

import pytest

from pixelgrid import Grid, bresenham_line, brush_cells, flood_fill, stamp_brush


def _colored(grid, name):
    return {(r, c) for r, row in enumerate(grid.rows())
            for c, cell in enumerate(row) if cell == name}


# ---------------------------------------------------------------------------
# Bresenham
# ---------------------------------------------------------------------------


class TestBresenham:
    def test_pure_diagonal(self):
        assert bresenham_line(0, 0, 5, 5) == [(i, i) for i in range(6)]

    def test_straight_row(self):
        assert bresenham_line(0, 0, 0, 5) == [(0, i) for i in range(6)]

    def test_straight_column_upward(self):
        assert bresenham_line(4, 2, 0, 2) == [(4, 2), (3, 2), (2, 2), (1, 2), (0, 2)]

    def test_single_cell(self):
        assert bresenham_line(3, 3, 3, 3) == [(3, 3)]

    @pytest.mark.parametrize("start, end", [
        ((0, 0), (2, 7)),
        ((7, 1), (0, 4)),
        ((5, 9), (1, 0)),
        ((2, 2), (9, 3)),
    ])
    def test_connected_and_bounded(self, start, end):
        cells = bresenham_line(*start, *end)
        assert cells[0] == start
        assert cells[-1] == end
        dx = abs(end[1] - start[1])
        dy = abs(end[0] - start[0])
        assert len(cells) == max(dx, dy) + 1
        for (r0, c0), (r1, c1) in zip(cells, cells[1:]):
            assert abs(r1 - r0) <= 1 and abs(c1 - c0) <= 1


# ---------------------------------------------------------------------------
# Brush
# ---------------------------------------------------------------------------


class TestBrush:
    def test_size_three_centered(self):
        grid = Grid(16, 16)
        cells = stamp_brush(grid, 5, 5, 3, "#000000")
        expected = {(r, c) for r in range(4, 7) for c in range(4, 7)}
        assert set(cells) == expected
        assert _colored(grid, "#000000") == expected

    def test_size_three_at_corner(self):
        grid = Grid(16, 16)
        cells = stamp_brush(grid, 0, 0, 3, "#000000")
        assert set(cells) == {(0, 0), (0, 1), (1, 0), (1, 1)}

    def test_size_one(self):
        grid = Grid(8, 8)
        assert stamp_brush(grid, 7, 7, 1, "#000000") == [(7, 7)]

    def test_even_size_leans_to_lower_indices(self):
        grid = Grid(16, 16)
        assert set(brush_cells(grid, 5, 5, 2)) == {(4, 4), (4, 5), (5, 4), (5, 5)}

    def test_size_four_offsets(self):
        grid = Grid(16, 16)
        cells = brush_cells(grid, 8, 8, 4)
        assert {r for r, _ in cells} == {6, 7, 8, 9}

    def test_bottom_right_edge_clipped(self):
        grid = Grid(8, 8)
        cells = stamp_brush(grid, 7, 7, 5, "#000000")
        assert set(cells) == {(r, c) for r in range(5, 8) for c in range(5, 8)}


# ---------------------------------------------------------------------------
# Flood fill
# ---------------------------------------------------------------------------


class TestFloodFill:
    @pytest.mark.parametrize("n, start", [(8, (3, 4)), (16, (0, 0)), (64, (40, 12))])
    def test_single_color_grid_fills_everything(self, n, start):
        grid = Grid(n, n)
        changed = flood_fill(grid, *start, "#ff0000")
        assert len(changed) == n * n
        assert len(_colored(grid, "#ff0000")) == n * n

    def test_same_color_is_noop(self):
        grid = Grid(8, 8)
        before = grid.rows()
        assert flood_fill(grid, 2, 2, "#ffffff") == []
        assert grid.rows() == before

    def test_stops_at_walls(self):
        grid = Grid(8, 8)
        for r in range(8):
            grid.set(r, 3, "#000000")
        flood_fill(grid, 0, 0, "#ff0000")
        assert _colored(grid, "#ff0000") == {(r, c) for r in range(8) for c in range(3)}
        assert len(_colored(grid, "#000000")) == 8
        assert len(_colored(grid, "#ffffff")) == 8 * 4

    def test_diagonal_gap_is_not_crossed(self):
        grid = Grid(8, 8)
        # Anti-diagonal wall: 4-connected fill must not leak through corners.
        for i in range(8):
            grid.set(i, 7 - i, "#000000")
        flood_fill(grid, 0, 0, "#00ff00")
        filled = _colored(grid, "#00ff00")
        assert (0, 0) in filled
        assert (7, 7) not in filled
        assert all(r + c < 7 for r, c in filled)

    def test_out_of_range_start(self):
        grid = Grid(8, 8)
        assert flood_fill(grid, -1, 0, "#000000") == []
        assert flood_fill(grid, 0, 8, "#000000") == []
