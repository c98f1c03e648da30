"""Tests for EditorSession: tool gestures, resize, clear, zoom and export."""

import pytest
from PyQt5.QtGui import QImage

from pixelgrid import (
    MAX_UNDO, EditorSession, GridSizeError, ToolType, ZOOM_MAX, ZOOM_MIN,
)


def _painted(session, name="#000000"):
    return {(r, c) for r, row in enumerate(session.grid.rows())
            for c, cell in enumerate(row) if cell == name}


# ---------------------------------------------------------------------------
# Pencil / eraser strokes
# ---------------------------------------------------------------------------


class TestStrokes:
    def test_press_stamps_and_starts_gesture(self, session):
        result = session.pointer_down(2, 3)
        assert session.drawing
        assert session.last_cell == (2, 3)
        assert result.cells == [(2, 3)]
        assert not result.committed
        assert len(session.history) == 1

    def test_fast_drag_is_continuous(self, session):
        session.pointer_down(0, 0)
        session.pointer_move(0, 7)
        session.pointer_up()
        assert _painted(session) == {(0, c) for c in range(8)}

    def test_drag_seeds_from_last_committed_cell(self, session):
        session.pointer_down(0, 0)
        session.pointer_move(3, 3)
        result = session.pointer_move(3, 6)
        assert result.cells == [(3, 3), (3, 4), (3, 5), (3, 6)]
        assert session.last_cell == (3, 6)

    def test_stationary_move_restamps_cell(self, session):
        session.pointer_down(4, 4)
        result = session.pointer_move(4, 4)
        assert result.cells == [(4, 4)]

    def test_release_commits_once(self, session):
        session.pointer_down(1, 1)
        session.pointer_move(1, 5)
        result = session.pointer_up()
        assert result.committed
        assert not result
        assert not session.drawing
        assert session.last_cell is None
        assert len(session.history) == 2
        assert session.modified

    def test_move_without_gesture_does_nothing(self, session):
        result = session.pointer_move(3, 3)
        assert not result
        assert _painted(session) == set()

    def test_release_without_gesture_records_nothing(self, session):
        assert not session.pointer_up().committed
        assert len(session.history) == 1

    def test_leave_keeps_last_cell(self, session):
        session.pointer_down(2, 2)
        session.pointer_leave()
        assert session.drawing
        assert session.last_cell == (2, 2)
        session.pointer_move(2, 6)
        assert _painted(session) == {(2, c) for c in range(2, 7)}

    def test_brush_size_applies_to_stroke(self, session):
        session.set_brush_size(3)
        session.pointer_down(4, 4)
        session.pointer_up()
        assert _painted(session) == {(r, c) for r in range(3, 6) for c in range(3, 6)}

    @pytest.mark.parametrize("requested, expected", [(0, 1), (3, 3), (9, 5), (-2, 1)])
    def test_brush_size_clamped(self, session, requested, expected):
        assert session.set_brush_size(requested) == expected
        assert session.brush_size == expected

    def test_pencil_pushes_color_once_per_stamp(self, session):
        session.set_color("#ff0000")
        session.pointer_down(0, 0)
        session.set_color("#00ff00")
        session.pointer_move(0, 1)
        session.pointer_up()
        assert session.color_history.colors() == ["#00ff00", "#ff0000"]

    def test_eraser_paints_background(self, session):
        session.grid.fill("#0000ff")
        session.set_tool(ToolType.ERASER)
        session.pointer_down(0, 0)
        session.pointer_move(0, 2)
        session.pointer_up()
        assert _painted(session, "#ffffff") == {(0, 0), (0, 1), (0, 2)}
        assert len(session.color_history) == 0


# ---------------------------------------------------------------------------
# Fill and eyedropper
# ---------------------------------------------------------------------------


class TestFillAndEyedropper:
    def test_fill_is_one_undo_step(self, session):
        session.set_tool(ToolType.FILL)
        session.set_color("#ff0000")
        result = session.pointer_down(5, 2)
        session.pointer_up()
        assert result.full and result.committed
        assert len(result.cells) == 64
        assert len(session.history) == 2
        assert session.color_history.colors() == ["#ff0000"]
        session.undo()
        assert _painted(session, "#ffffff") == {(r, c) for r in range(8) for c in range(8)}

    def test_same_color_fill_records_nothing(self, session):
        session.set_tool(ToolType.FILL)
        session.set_color("#ffffff")
        before = session.grid.rows()
        result = session.pointer_down(3, 3)
        assert not result
        assert not result.committed
        assert session.grid.rows() == before
        assert len(session.history) == 1
        assert not session.modified

    def test_eyedropper_picks_and_returns_to_pencil(self, session):
        session.grid.set(3, 3, "#123456")
        session.set_tool(ToolType.EYEDROPPER)
        result = session.pointer_down(3, 3)
        assert session.color.name() == "#123456"
        assert session.tool_type == ToolType.PENCIL
        assert not result.committed
        assert len(session.history) == 1

    def test_eyedropper_does_not_start_a_gesture(self, session):
        session.set_tool(ToolType.EYEDROPPER)
        session.pointer_down(0, 0)
        assert not session.drawing
        assert not session.pointer_up().committed


# ---------------------------------------------------------------------------
# Resize / clear
# ---------------------------------------------------------------------------


class TestResizeAndClear:
    def test_resize_creates_blank_grid_and_resets_history(self, session):
        session.pointer_down(0, 0)
        session.pointer_up()
        result = session.resize(32)
        assert result.full
        assert (session.grid.width, session.grid.height) == (32, 32)
        assert _painted(session) == set()
        assert len(session.history) == 1
        assert not session.modified

    def test_resize_accepts_text(self, session):
        session.resize("12")
        assert session.grid.width == 12

    @pytest.mark.parametrize("value", ["big", "7", 65, ""])
    def test_invalid_resize_leaves_state_alone(self, session, value):
        session.pointer_down(0, 0)
        session.pointer_up()
        rows = session.grid.rows()
        with pytest.raises(GridSizeError):
            session.resize(value)
        assert session.grid.rows() == rows
        assert len(session.history) == 2

    def test_resize_aborts_gesture(self, session):
        session.pointer_down(0, 0)
        session.resize(16)
        assert not session.drawing
        assert session.last_cell is None

    def test_clear_is_undoable(self, session):
        session.pointer_down(0, 0)
        session.pointer_move(7, 7)
        session.pointer_up()
        painted = _painted(session)
        result = session.clear()
        assert result.full and result.committed
        assert _painted(session) == set()
        session.undo()
        assert _painted(session) == painted

    def test_history_capacity_default(self, session):
        assert session.history.capacity == MAX_UNDO == 50


# ---------------------------------------------------------------------------
# Zoom
# ---------------------------------------------------------------------------


class TestZoom:
    def test_button_steps(self, session):
        assert session.zoom_in()
        assert session.zoom == 1.25
        session.zoom_out()
        session.zoom_out()
        assert session.zoom == 0.75

    def test_wheel_steps(self, session):
        session.zoom_by_wheel(1)
        assert session.zoom == 1.1
        session.zoom_by_wheel(-3)
        assert session.zoom == 0.8

    def test_clamped(self, session):
        session.set_zoom(100)
        assert session.zoom == ZOOM_MAX
        assert not session.zoom_in()
        session.set_zoom(0)
        assert session.zoom == ZOOM_MIN
        assert not session.zoom_out()

    def test_reset(self, session):
        session.set_zoom(3.0)
        assert session.zoom_reset()
        assert session.zoom == 1.0

    def test_zoom_does_not_touch_cell_size(self, session):
        before = session.cell_size
        session.set_zoom(2.0)
        assert session.cell_size == before == 80


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    def test_png_is_one_pixel_per_cell(self, tmp_path):
        session = EditorSession(16)
        session.set_color("#ff0000")
        session.pointer_down(2, 9)
        session.pointer_up()
        path = str(tmp_path / "art.png")
        assert session.export_png(path)
        assert not session.modified

        img = QImage(path)
        assert (img.width(), img.height()) == (16, 16)
        assert img.pixel(9, 2) & 0xFFFFFF == 0xFF0000
        assert img.pixel(0, 0) & 0xFFFFFF == 0xFFFFFF
        assert img.pixel(2, 9) & 0xFFFFFF == 0xFFFFFF

    def test_export_failure_keeps_modified(self, session, tmp_path):
        session.pointer_down(0, 0)
        session.pointer_up()
        missing = str(tmp_path / "no-such-dir" / "art.png")
        assert not session.export_png(missing)
        assert session.modified
