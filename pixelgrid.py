"""Pixel Paint engine: grid model, tools, undo history and rendering.

Nothing in here creates widgets.  The editor state lives in an
:class:`EditorSession` owned by the caller; every mutation returns an
:class:`EditResult` describing what needs to be redrawn.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto

from PyQt5.QtCore import QRect
from PyQt5.QtGui import QColor, QImage, QPainter

log = logging.getLogger("pixelpaint.grid")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DISPLAY_SIZE = 640
DEFAULT_GRID_SIZE = 16
MIN_GRID_SIZE = 8
MAX_GRID_SIZE = 64
MAX_UNDO = 50
MAX_RECENT_COLORS = 20
BRUSH_MIN = 1
BRUSH_MAX = 5
ZOOM_MIN = 0.25
ZOOM_MAX = 4.0
ZOOM_STEP = 0.25
ZOOM_WHEEL_STEP = 0.1
DEFAULT_FG = "#000000"
DEFAULT_BG = "#ffffff"
WORKSPACE_COLOR = QColor(128, 128, 128)
GRID_LINE_COLOR = QColor(0, 0, 0, 48)
HOVER_OPACITY = 0.5

_RGB_MASK = 0xFFFFFF
_OPAQUE = 0xFF000000


def _rgb(color):
    """Normalize anything QColor accepts to a 24-bit RGB int."""
    c = QColor(color)
    if not c.isValid():
        raise ValueError(f"Invalid color: {color!r}")
    return c.rgb() & _RGB_MASK


def _color(rgb):
    return QColor((rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF)


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class GridSizeError(ValueError):
    """Raised for a grid size the user typed that cannot be used."""


def parse_grid_size(value):
    """Validate a requested grid size (int or text) and return it as int."""
    if isinstance(value, bool):
        raise GridSizeError(f"{value!r} is not a grid size.")
    if isinstance(value, int):
        n = value
    else:
        text = str(value).strip()
        try:
            n = int(text)
        except ValueError:
            raise GridSizeError(
                f"'{text}' is not a whole number. Enter a size between "
                f"{MIN_GRID_SIZE} and {MAX_GRID_SIZE}.") from None
    if not MIN_GRID_SIZE <= n <= MAX_GRID_SIZE:
        raise GridSizeError(
            f"Grid size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}, "
            f"got {n}.")
    return n


# ---------------------------------------------------------------------------
# Grid model
# ---------------------------------------------------------------------------
class Grid:
    """A width x height color buffer, one QImage pixel per cell.

    Cells are addressed as ``(row, col)``; ``row`` is the image y and
    ``col`` the image x.  Reads outside the grid return ``None`` and writes
    outside it are ignored.
    """

    def __init__(self, width, height, fill_color=DEFAULT_BG):
        if width < 1 or height < 1:
            raise ValueError(f"Grid size must be positive, got {width}x{height}")
        self._image = QImage(width, height, QImage.Format_RGB32)
        self._image.fill(_color(_rgb(fill_color)))

    @property
    def width(self):
        return self._image.width()

    @property
    def height(self):
        return self._image.height()

    def contains(self, row, col):
        return 0 <= row < self.height and 0 <= col < self.width

    def get_rgb(self, row, col):
        if not self.contains(row, col):
            return None
        return self._image.pixel(col, row) & _RGB_MASK

    def get(self, row, col):
        rgb = self.get_rgb(row, col)
        return None if rgb is None else _color(rgb)

    def set(self, row, col, color):
        """Set one cell. Returns True if its color actually changed."""
        return self.set_rgb(row, col, _rgb(color))

    def set_rgb(self, row, col, rgb):
        if not self.contains(row, col):
            return False
        if self._image.pixel(col, row) & _RGB_MASK == rgb:
            return False
        self._image.setPixel(col, row, _OPAQUE | rgb)
        return True

    def fill(self, color):
        self._image.fill(_color(_rgb(color)))

    def snapshot(self):
        """Deep copy of the cell contents, safe to keep in history."""
        return self._image.copy()

    def restore(self, snapshot):
        if snapshot.width() != self.width or snapshot.height() != self.height:
            raise ValueError(
                f"Snapshot is {snapshot.width()}x{snapshot.height()}, "
                f"grid is {self.width}x{self.height}")
        self._image = snapshot.copy()

    def to_image(self):
        return self._image.copy()

    def rows(self):
        """Cell colors as nested lists of ``#rrggbb`` names."""
        return [[_color(self.get_rgb(row, col)).name() for col in range(self.width)]
                for row in range(self.height)]


# ---------------------------------------------------------------------------
# Coordinate mapping
# ---------------------------------------------------------------------------
def cell_size_for(width, height, display_size=DISPLAY_SIZE):
    """Side length of one cell on the logical display surface."""
    return min(display_size / width, display_size / height)


def map_to_cell(x, y, rendered_width, rendered_height, cell_size,
                grid_width, grid_height, logical_size=DISPLAY_SIZE):
    """Map a pointer position on the rendered surface to a ``(row, col)``.

    The result is clamped to the grid, so a drag that leaves the canvas keeps
    reporting the nearest edge cell.
    """
    sx = logical_size / rendered_width if rendered_width else 1.0
    sy = logical_size / rendered_height if rendered_height else 1.0
    col = math.floor(x * sx / cell_size)
    row = math.floor(y * sy / cell_size)
    return _clamp(row, 0, grid_height - 1), _clamp(col, 0, grid_width - 1)


# ---------------------------------------------------------------------------
# Stroke interpolation
# ---------------------------------------------------------------------------
def bresenham_line(row0, col0, row1, col1):
    """8-connected cells from ``(row0, col0)`` to ``(row1, col1)``, inclusive."""
    cells = []
    dx = abs(col1 - col0)
    dy = abs(row1 - row0)
    sx = 1 if col0 < col1 else -1
    sy = 1 if row0 < row1 else -1
    err = dx - dy
    row, col = row0, col0
    while True:
        cells.append((row, col))
        if row == row1 and col == col1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            col += sx
        if e2 < dx:
            err += dx
            row += sy
    return cells


# ---------------------------------------------------------------------------
# Tool algorithms
# ---------------------------------------------------------------------------
def brush_cells(grid, row, col, size):
    """In-bounds cells of a square brush of side ``size`` centered on a cell.

    Even sizes lean toward lower indices: a 2x2 brush at (5, 5) covers
    rows and columns 4..5.
    """
    offset = size // 2
    cells = []
    for dr in range(-offset, size - offset):
        for dc in range(-offset, size - offset):
            r, c = row + dr, col + dc
            if grid.contains(r, c):
                cells.append((r, c))
    return cells


def stamp_brush(grid, row, col, size, color):
    """Paint a square brush; returns every in-bounds cell it covered."""
    rgb = _rgb(color)
    cells = brush_cells(grid, row, col, size)
    for r, c in cells:
        grid.set_rgb(r, c, rgb)
    return cells


def flood_fill(grid, row, col, color):
    """Recolor the 4-connected region of the start cell's color.

    Returns the changed cells; empty when the start is outside the grid or
    already has the replacement color.
    """
    target = grid.get_rgb(row, col)
    fill = _rgb(color)
    if target is None or target == fill:
        return []
    changed = []
    queue = deque()
    queue.append((row, col))
    visited = {(row, col)}
    while queue:
        r, c = queue.popleft()
        if grid.get_rgb(r, c) != target:
            continue
        grid.set_rgb(r, c, fill)
        changed.append((r, c))
        for nr, nc in ((r - 1, c), (r + 1, c), (r, c - 1), (r, c + 1)):
            if grid.contains(nr, nc) and (nr, nc) not in visited:
                visited.add((nr, nc))
                queue.append((nr, nc))
    log.debug(f"[fill] ({row}, {col}) -> {_color(fill).name()}: {len(changed)} cells")
    return changed


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------
class HistoryManager:
    """Bounded snapshot stack with a cursor at the current entry."""

    def __init__(self, capacity=MAX_UNDO):
        self.capacity = capacity
        self._entries = []
        self.index = -1

    def __len__(self):
        return len(self._entries)

    def record(self, snapshot):
        del self._entries[self.index + 1:]
        self._entries.append(snapshot)
        self.index += 1
        if len(self._entries) > self.capacity:
            self._entries.pop(0)
            self.index -= 1
            log.debug(f"[history] evicted oldest entry, {len(self._entries)} kept")

    def reset(self, snapshot):
        self._entries.clear()
        self.index = -1
        self.record(snapshot)

    def can_undo(self):
        return self.index > 0

    def can_redo(self):
        return 0 <= self.index < len(self._entries) - 1

    def undo(self):
        if not self.can_undo():
            return None
        self.index -= 1
        return self._entries[self.index]

    def redo(self):
        if not self.can_redo():
            return None
        self.index += 1
        return self._entries[self.index]


class ColorHistory:
    """Recently used colors, most recent first, no duplicates."""

    def __init__(self, capacity=MAX_RECENT_COLORS):
        self.capacity = capacity
        self._colors = []

    def __len__(self):
        return len(self._colors)

    def add(self, color):
        name = _color(_rgb(color)).name()
        self._colors = [c for c in self._colors if c != name]
        self._colors.insert(0, name)
        del self._colors[self.capacity:]

    def colors(self):
        return list(self._colors)


# ---------------------------------------------------------------------------
# Edit results
# ---------------------------------------------------------------------------
@dataclass
class EditResult:
    """What a mutation touched, so the caller can pick a redraw strategy."""
    cells: list = field(default_factory=list)
    full: bool = False
    committed: bool = False

    def __bool__(self):
        return self.full or bool(self.cells)


# ---------------------------------------------------------------------------
# Tools (Strategy pattern)
# ---------------------------------------------------------------------------
class ToolType(Enum):
    PENCIL = auto()
    ERASER = auto()
    FILL = auto()
    EYEDROPPER = auto()


class BaseTool:
    """Base interface for the editing tools."""

    name = "Base"

    def __init__(self, session):
        self.session = session

    def press(self, row, col):
        return EditResult()

    def move(self, row, col):
        return EditResult()

    def release(self):
        return EditResult()

    def leave(self):
        return EditResult()


class _StrokeTool(BaseTool):
    """Drag-to-paint behaviour shared by pencil and eraser."""

    def stroke_color(self):
        raise NotImplementedError

    def stamp(self, row, col):
        s = self.session
        return stamp_brush(s.grid, row, col, s.brush_size, self.stroke_color())

    def press(self, row, col):
        s = self.session
        s.drawing = True
        s.last_cell = (row, col)
        return EditResult(self.stamp(row, col))

    def move(self, row, col):
        s = self.session
        if not s.drawing:
            return EditResult()
        if s.last_cell is None or s.last_cell == (row, col):
            cells = self.stamp(row, col)
        else:
            cells = []
            for r, c in bresenham_line(*s.last_cell, row, col):
                cells.extend(self.stamp(r, c))
        s.last_cell = (row, col)
        return EditResult(list(dict.fromkeys(cells)))

    def release(self):
        s = self.session
        if not s.drawing:
            return EditResult()
        s.drawing = False
        s.last_cell = None
        s.commit()
        return EditResult(committed=True)


class PencilTool(_StrokeTool):
    name = "Pencil"

    def stroke_color(self):
        return self.session.color

    def stamp(self, row, col):
        cells = super().stamp(row, col)
        self.session.color_history.add(self.session.color)
        return cells


class EraserTool(_StrokeTool):
    name = "Eraser"

    def stroke_color(self):
        return self.session.background


class FillTool(BaseTool):
    name = "Fill"

    def press(self, row, col):
        s = self.session
        cells = flood_fill(s.grid, row, col, s.color)
        if not cells:
            return EditResult()
        s.color_history.add(s.color)
        s.commit()
        return EditResult(cells, full=True, committed=True)


class EyedropperTool(BaseTool):
    """Picks one color, then hands control back to the pencil."""
    name = "Eyedropper"

    def press(self, row, col):
        s = self.session
        color = s.grid.get(row, col)
        if color is None:
            return EditResult()
        s.set_color(color)
        s.set_tool(ToolType.PENCIL)
        return EditResult()


# ---------------------------------------------------------------------------
# Editor session
# ---------------------------------------------------------------------------
class EditorSession:
    """All state of one editing session: grid, history, tools and view."""

    def __init__(self, size=DEFAULT_GRID_SIZE, history_size=MAX_UNDO):
        size = parse_grid_size(size)
        self.background = QColor(DEFAULT_BG)
        self.color = QColor(DEFAULT_FG)
        self.brush_size = BRUSH_MIN
        self.zoom = 1.0
        self.drawing = False
        self.last_cell = None
        self.modified = False
        self.color_history = ColorHistory()
        self.history = HistoryManager(history_size)
        self.grid = Grid(size, size, self.background)
        self.history.reset(self.grid.snapshot())

        self._tools = {
            ToolType.PENCIL: PencilTool(self),
            ToolType.ERASER: EraserTool(self),
            ToolType.FILL: FillTool(self),
            ToolType.EYEDROPPER: EyedropperTool(self),
        }
        self._tool_type = ToolType.PENCIL

    # --- Tool state ---
    @property
    def tool_type(self):
        return self._tool_type

    def current_tool(self):
        return self._tools[self._tool_type]

    def tool_name(self, tool_type=None):
        return self._tools[tool_type or self._tool_type].name

    def set_tool(self, tool_type):
        self._tool_type = ToolType(tool_type)

    def set_color(self, color):
        _rgb(color)
        self.color = QColor(color)

    def set_brush_size(self, size):
        self.brush_size = _clamp(int(size), BRUSH_MIN, BRUSH_MAX)
        return self.brush_size

    @property
    def cell_size(self):
        return cell_size_for(self.grid.width, self.grid.height)

    # --- Pointer gestures ---
    def pointer_down(self, row, col):
        return self.current_tool().press(row, col)

    def pointer_move(self, row, col):
        return self.current_tool().move(row, col)

    def pointer_up(self):
        return self.current_tool().release()

    def pointer_leave(self):
        return self.current_tool().leave()

    def commit(self):
        """Record the grid as one history step."""
        self.history.record(self.grid.snapshot())
        self.modified = True

    # --- Undo / Redo ---
    def undo(self):
        if self.drawing:
            return EditResult()
        snapshot = self.history.undo()
        if snapshot is None:
            return EditResult()
        self.grid.restore(snapshot)
        self.modified = True
        return EditResult(full=True)

    def redo(self):
        if self.drawing:
            return EditResult()
        snapshot = self.history.redo()
        if snapshot is None:
            return EditResult()
        self.grid.restore(snapshot)
        self.modified = True
        return EditResult(full=True)

    # --- Canvas operations ---
    def resize(self, size):
        """Start over on a blank ``size`` x ``size`` grid."""
        size = parse_grid_size(size)
        self.grid = Grid(size, size, self.background)
        self.history.reset(self.grid.snapshot())
        self.drawing = False
        self.last_cell = None
        self.modified = False
        log.debug(f"[resize] grid is now {size}x{size}")
        return EditResult(full=True)

    def clear(self):
        """Fill the grid with the background color as one undoable step."""
        self.drawing = False
        self.last_cell = None
        self.grid.fill(self.background)
        self.commit()
        return EditResult(full=True, committed=True)

    def export_png(self, path):
        ok = self.grid.to_image().save(path, "PNG")
        if ok:
            self.modified = False
            log.debug(f"[export] {self.grid.width}x{self.grid.height} -> {path}")
        else:
            log.error(f"[export] could not write {path}")
        return ok

    # --- Zoom ---
    def set_zoom(self, z):
        """Clamp and apply a zoom factor. Returns True if it changed."""
        z = round(_clamp(z, ZOOM_MIN, ZOOM_MAX), 2)
        if abs(z - self.zoom) < 1e-9:
            return False
        self.zoom = z
        return True

    def zoom_in(self):
        return self.set_zoom(self.zoom + ZOOM_STEP)

    def zoom_out(self):
        return self.set_zoom(self.zoom - ZOOM_STEP)

    def zoom_by_wheel(self, notches):
        return self.set_zoom(self.zoom + notches * ZOOM_WHEEL_STEP)

    def zoom_reset(self):
        return self.set_zoom(1.0)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
class GridRenderer:
    """Draws a grid onto a fixed-size display surface."""

    def __init__(self, size=DISPLAY_SIZE):
        self.size = size
        self.surface = QImage(size, size, QImage.Format_ARGB32_Premultiplied)
        self.surface.fill(WORKSPACE_COLOR)

    def _painter(self):
        p = QPainter(self.surface)
        p.setRenderHint(QPainter.Antialiasing, False)
        return p

    def _cell_size(self, grid):
        return cell_size_for(grid.width, grid.height, self.size)

    @staticmethod
    def _edge(index, cs):
        """Device pixel where cell ``index`` starts along one axis."""
        return int(math.floor(index * cs + 0.5))

    def _cell_rect(self, row, col, cs):
        """Whole-pixel rect of a cell; neighbours share edges, never pixels."""
        x0, x1 = self._edge(col, cs), self._edge(col + 1, cs)
        y0, y1 = self._edge(row, cs), self._edge(row + 1, cs)
        return QRect(x0, y0, x1 - x0, y1 - y0)

    def _paint_cells(self, p, grid, cs):
        p.fillRect(QRect(0, 0, self.size, self.size), WORKSPACE_COLOR)
        for row in range(grid.height):
            for col in range(grid.width):
                p.fillRect(self._cell_rect(row, col, cs),
                           _color(grid.get_rgb(row, col)))

    def _paint_grid_lines(self, p, grid, cs, cols=None, rows=None):
        # One-pixel lines on each cell's left/top edge; verticals first.
        right = self._edge(grid.width, cs)
        bottom = self._edge(grid.height, cs)
        if cols is None:
            cols = range(grid.width + 1)
        if rows is None:
            rows = range(grid.height + 1)
        for col in cols:
            p.fillRect(QRect(self._edge(col, cs), 0, 1, bottom), GRID_LINE_COLOR)
        for row in rows:
            p.fillRect(QRect(0, self._edge(row, cs), right, 1), GRID_LINE_COLOR)

    def render(self, grid):
        cs = self._cell_size(grid)
        p = self._painter()
        self._paint_cells(p, grid, cs)
        self._paint_grid_lines(p, grid, cs)
        p.end()

    def render_cell(self, grid, row, col):
        """Repaint one cell exactly as a full render would, leaving neighbors alone."""
        if not grid.contains(row, col):
            return
        cs = self._cell_size(grid)
        rect = self._cell_rect(row, col, cs)
        p = self._painter()
        p.setClipRect(rect)
        p.fillRect(rect, _color(grid.get_rgb(row, col)))
        # Only the cell's own left and top lines fall inside its rect.
        self._paint_grid_lines(p, grid, cs, cols=(col,), rows=(row,))
        p.end()

    def render_hover(self, grid, row, col, brush_size, color):
        """Full redraw with a translucent brush preview under the grid lines."""
        cs = self._cell_size(grid)
        preview = QColor(color)
        preview.setAlphaF(HOVER_OPACITY)
        p = self._painter()
        self._paint_cells(p, grid, cs)
        for r, c in brush_cells(grid, row, col, brush_size):
            p.fillRect(self._cell_rect(r, c, cs), preview)
        self._paint_grid_lines(p, grid, cs)
        p.end()

    def apply(self, grid, result):
        """Redraw whatever an EditResult says changed."""
        if result.full:
            self.render(grid)
        else:
            for row, col in result.cells:
                self.render_cell(grid, row, col)

    def pixel(self, x, y):
        return QColor.fromRgba(self.surface.pixel(x, y))
