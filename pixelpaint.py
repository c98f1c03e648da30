#!/usr/bin/env python3
"""Pixel Paint: grid pixel-art editor built with Python + PyQt5."""

import logging
import os
import sys

from PyQt5.QtCore import QPointF, QRectF, QSettings, QSize, Qt, pyqtSignal
from PyQt5.QtGui import (
    QBrush, QColor, QIcon, QKeySequence, QPainter, QPainterPath, QPen, QPixmap,
    QTransform,
)
from PyQt5.QtWidgets import (
    QApplication, QColorDialog, QFileDialog, QFrame, QGridLayout, QHBoxLayout,
    QInputDialog, QLabel, QLineEdit, QMainWindow, QMessageBox, QPushButton,
    QScrollArea, QSpinBox, QToolBar, QToolButton, QVBoxLayout, QWidget,
)

from pixelgrid import (
    BRUSH_MAX, BRUSH_MIN, DEFAULT_GRID_SIZE, DISPLAY_SIZE, MAX_GRID_SIZE,
    MAX_RECENT_COLORS, MIN_GRID_SIZE, EditorSession, GridRenderer,
    GridSizeError, ToolType, map_to_cell, parse_grid_size,
)

log = logging.getLogger("pixelpaint")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
APP_NAME = "Pixel Paint"
SETTINGS_ORG = "PixelPaint"
DEFAULT_DIR = os.path.expanduser("~/Pictures")

PALETTE_COLORS = [
    "#000000", "#808080", "#800000", "#808000",
    "#008000", "#008080", "#000080", "#800080",
    "#808040", "#004040", "#0080FF", "#004080",
    "#4000FF", "#804000",
    "#FFFFFF", "#C0C0C0", "#FF0000", "#FFFF00",
    "#00FF00", "#00FFFF", "#0000FF", "#FF00FF",
    "#FFFF80", "#00FF80", "#80FFFF", "#8080FF",
    "#FF0080", "#FF8040",
]
PALETTE_COLUMNS = 14
WHEEL_NOTCH = 120

TOOL_SHORTCUTS = {
    Qt.Key_P: ToolType.PENCIL,
    Qt.Key_E: ToolType.ERASER,
    Qt.Key_F: ToolType.FILL,
    Qt.Key_I: ToolType.EYEDROPPER,
}

TOOL_SHORTCUT_LABELS = {v: chr(k) for k, v in TOOL_SHORTCUTS.items()}

# Two chords each so Ctrl and Cmd/Meta keyboards behave the same.
UNDO_SHORTCUTS = ("Ctrl+Z", "Meta+Z")
REDO_SHORTCUTS = ("Ctrl+Y", "Meta+Y")

_CHORD_MODIFIERS = (Qt.ControlModifier | Qt.MetaModifier
                    | Qt.ShiftModifier | Qt.AltModifier)


def history_shortcut(key, modifiers):
    """Return "undo", "redo" or None for a key press.

    Only Ctrl or Meta on its own counts; Ctrl+Shift+Z and friends are left
    to other bindings.
    """
    mods = int(modifiers) & int(_CHORD_MODIFIERS)
    if mods not in (int(Qt.ControlModifier), int(Qt.MetaModifier)):
        return None
    if key == Qt.Key_Z:
        return "undo"
    if key == Qt.Key_Y:
        return "redo"
    return None


# ---------------------------------------------------------------------------
# Canvas widget
# ---------------------------------------------------------------------------
class PixelCanvas(QWidget):
    """Shows the session's grid at the current zoom and feeds it pointer input."""
    edited = pyqtSignal()
    tool_changed = pyqtSignal()
    color_changed = pyqtSignal()
    zoom_changed = pyqtSignal(float)
    brush_size_changed = pyqtSignal(int)
    cell_hovered = pyqtSignal(int, int)

    _PREVIEW_TOOLS = {ToolType.PENCIL, ToolType.ERASER}

    def __init__(self, session, parent=None):
        super().__init__(parent)
        self.session = session
        self.renderer = GridRenderer(DISPLAY_SIZE)
        self._hover = None
        self._zoom_wheel_accum = 0
        self._brush_wheel_accum = 0
        self.renderer.render(session.grid)
        self._apply_zoom()
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setCursor(Qt.CrossCursor)

    # --- Helpers ---
    def _apply_zoom(self):
        side = max(1, int(round(DISPLAY_SIZE * self.session.zoom)))
        self.setFixedSize(side, side)

    def _cell_at(self, pos):
        s = self.session
        return map_to_cell(pos.x(), pos.y(), self.width(), self.height(),
                           s.cell_size, s.grid.width, s.grid.height)

    def _clear_hover(self):
        if self._hover is None:
            return False
        self._hover = None
        self.renderer.render(self.session.grid)
        return True

    def refresh(self, result=None):
        """Redraw everything, or just what ``result`` touched."""
        if result is None or result.full:
            # A full redraw wipes the preview; let the next move repaint it.
            self._hover = None
        if result is None:
            self.renderer.render(self.session.grid)
        else:
            self.renderer.apply(self.session.grid, result)
        self.update()

    def _run(self, action, *args):
        """Run a session call and emit whatever state it changed."""
        s = self.session
        tool, color = s.tool_type, s.color.rgb()
        result = action(*args)
        if result:
            self.refresh(result)
        if result.committed or result.full:
            self.edited.emit()
        if s.tool_type != tool:
            self.tool_changed.emit()
        if s.color.rgb() != color:
            self.color_changed.emit()
        return result

    # --- Commands ---
    def set_tool(self, tool_type):
        self.session.set_tool(tool_type)
        if self._clear_hover():
            self.update()
        self.tool_changed.emit()

    def set_color(self, color):
        self.session.set_color(color)
        if self._clear_hover():
            self.update()
        self.color_changed.emit()

    def set_brush_size(self, size):
        size = self.session.set_brush_size(size)
        if self._clear_hover():
            self.update()
        self.brush_size_changed.emit(size)

    def undo(self):
        log.info("[undo]")
        return self._run(self.session.undo)

    def redo(self):
        log.info("[redo]")
        return self._run(self.session.redo)

    def clear(self):
        return self._run(self.session.clear)

    def resize_grid(self, size):
        return self._run(self.session.resize, size)

    def _zoomed(self, changed):
        if changed:
            self._apply_zoom()
            self.update()
            self.zoom_changed.emit(self.session.zoom)
        return changed

    def zoom_in(self):
        return self._zoomed(self.session.zoom_in())

    def zoom_out(self):
        return self._zoomed(self.session.zoom_out())

    def zoom_reset(self):
        return self._zoomed(self.session.zoom_reset())

    # --- Mouse events ---
    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return
        self.setFocus()
        if self.session.drawing:
            self._finish_gesture()
        self._clear_hover()
        row, col = self._cell_at(event.pos())
        self._run(self.session.pointer_down, row, col)

    def mouseMoveEvent(self, event):
        s = self.session
        row, col = self._cell_at(event.pos())
        if self.rect().contains(event.pos()):
            self.cell_hovered.emit(row, col)
        if s.drawing:
            if not event.buttons() & Qt.LeftButton:
                self._finish_gesture()
                return
            self._run(s.pointer_move, row, col)
            return
        if s.tool_type not in self._PREVIEW_TOOLS or not self.rect().contains(event.pos()):
            return
        if self._hover != (row, col):
            self._hover = (row, col)
            color = s.color if s.tool_type == ToolType.PENCIL else s.background
            self.renderer.render_hover(s.grid, row, col, s.brush_size, color)
            self.update()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton and self.session.drawing:
            self._finish_gesture()
            return
        super().mouseReleaseEvent(event)

    def _finish_gesture(self):
        self._run(self.session.pointer_up)

    def leaveEvent(self, event):
        self.session.pointer_leave()
        if self._clear_hover():
            self.update()
        super().leaveEvent(event)

    def wheelEvent(self, event):
        delta = event.angleDelta()
        raw = delta.y() or delta.x()
        # Trackpads send fractions of a notch; act only on whole ones.
        if event.modifiers() & Qt.ShiftModifier:
            self._brush_wheel_accum += raw
            notches = int(self._brush_wheel_accum / WHEEL_NOTCH)
            self._brush_wheel_accum -= notches * WHEEL_NOTCH
            if notches:
                self.set_brush_size(self.session.brush_size + notches)
        else:
            self._zoom_wheel_accum += raw
            notches = int(self._zoom_wheel_accum / WHEEL_NOTCH)
            self._zoom_wheel_accum -= notches * WHEEL_NOTCH
            if notches:
                self._zoomed(self.session.zoom_by_wheel(notches))
        event.accept()

    # --- Keyboard fallback (in case QAction shortcuts don't fire) ---
    def keyPressEvent(self, event):
        key = event.key()
        mods = event.modifiers()
        action = history_shortcut(key, mods)
        if action == "undo":
            self.undo()
        elif action == "redo":
            self.redo()
        elif not int(mods) & int(_CHORD_MODIFIERS) and key in TOOL_SHORTCUTS:
            self.set_tool(TOOL_SHORTCUTS[key])
        else:
            super().keyPressEvent(event)

    # --- Paint ---
    def paintEvent(self, event):
        painter = QPainter(self)
        painter.drawImage(QRectF(self.rect()), self.renderer.surface)
        painter.end()


# ---------------------------------------------------------------------------
# UI widgets
# ---------------------------------------------------------------------------
def _make_tool_icon(tool_type, size=24):
    """Draw a simple icon for each tool programmatically."""
    pm = QPixmap(size, size)
    pm.fill(Qt.transparent)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    p.setPen(QPen(QColor(40, 40, 40), 1.5))
    s = size

    if tool_type == ToolType.PENCIL:
        body = QPainterPath()
        body.moveTo(s * 0.15, s * 0.85)
        body.lineTo(s * 0.22, s * 0.62)
        body.lineTo(s * 0.70, s * 0.14)
        body.lineTo(s * 0.86, s * 0.30)
        body.lineTo(s * 0.38, s * 0.78)
        body.closeSubpath()
        p.setBrush(QBrush(QColor(240, 200, 80)))
        p.drawPath(body)

    elif tool_type == ToolType.ERASER:
        p.setBrush(QBrush(QColor(255, 200, 200)))
        p.setTransform(QTransform().translate(s / 2, s / 2).rotate(-35))
        p.drawRect(QRectF(-s * 0.38, -s * 0.18, s * 0.76, s * 0.36))

    elif tool_type == ToolType.FILL:
        bucket = QPainterPath()
        bucket.moveTo(s * 0.20, s * 0.30)
        bucket.lineTo(s * 0.15, s * 0.85)
        bucket.lineTo(s * 0.65, s * 0.90)
        bucket.lineTo(s * 0.60, s * 0.35)
        bucket.closeSubpath()
        p.setBrush(QBrush(QColor(180, 180, 180)))
        p.drawPath(bucket)
        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(QColor(80, 150, 255)))
        p.drawEllipse(QPointF(s * 0.78, s * 0.62), s * 0.08, s * 0.14)

    elif tool_type == ToolType.EYEDROPPER:
        p.setPen(QPen(QColor(40, 40, 40), 2.5, Qt.SolidLine, Qt.RoundCap))
        p.drawLine(QPointF(s * 0.15, s * 0.85), QPointF(s * 0.60, s * 0.40))
        p.setPen(QPen(QColor(40, 40, 40), 1.2))
        p.setBrush(QBrush(QColor(180, 80, 80)))
        p.drawEllipse(QPointF(s * 0.72, s * 0.28), s * 0.14, s * 0.14)

    p.end()
    return QIcon(pm)


def _make_history_icon(redo=False, size=24):
    """Draw a curved undo arrow, mirrored for redo."""
    pm = QPixmap(size, size)
    pm.fill(Qt.transparent)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    if redo:
        p.setTransform(QTransform(-1, 0, 0, 1, size, 0))
    p.setPen(QPen(QColor(40, 40, 40), 2))
    path = QPainterPath()
    path.moveTo(6, 12)
    path.arcTo(QRectF(6, 6, 14, 12), 180, -180)
    p.drawPath(path)
    p.drawLine(6, 12, 10, 9)
    p.drawLine(6, 12, 10, 15)
    p.end()
    return QIcon(pm)


class ColorSwatch(QWidget):
    """Small clickable color swatch."""
    clicked = pyqtSignal(QColor)

    def __init__(self, color, parent=None, size=16):
        super().__init__(parent)
        self.color = QColor(color)
        self.setFixedSize(size, size)

    def paintEvent(self, event):
        p = QPainter(self)
        p.setPen(QPen(QColor(128, 128, 128), 1))
        p.setBrush(QBrush(self.color))
        p.drawRect(0, 0, self.width() - 1, self.height() - 1)
        p.end()

    def mousePressEvent(self, event):
        if self.isEnabled():
            self.clicked.emit(QColor(self.color))


class ColorSelector(QWidget):
    """Current drawing color; click to choose any color."""
    color_picked = pyqtSignal(QColor)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.color = QColor(Qt.black)
        self.setFixedSize(36, 36)
        self.setToolTip("Current color (click to change)")

    def paintEvent(self, event):
        p = QPainter(self)
        p.setPen(QPen(QColor(100, 100, 100), 1))
        p.setBrush(QBrush(self.color))
        p.drawRect(2, 2, self.width() - 5, self.height() - 5)
        p.end()

    def mousePressEvent(self, event):
        c = QColorDialog.getColor(self.color, self, "Drawing Color")
        if c.isValid():
            self.color_picked.emit(c)


class ColorPalette(QWidget):
    """Fixed palette in 2 rows, then the recently used colours."""
    color_picked = pyqtSignal(QColor)

    def __init__(self, parent=None, swatch_size=16):
        super().__init__(parent)
        self._recent_swatches = []
        grid = QGridLayout(self)
        grid.setSpacing(1)
        grid.setContentsMargins(0, 0, 0, 0)
        for i, hex_color in enumerate(PALETTE_COLORS):
            swatch = ColorSwatch(hex_color, size=swatch_size)
            swatch.clicked.connect(self.color_picked)
            grid.addWidget(swatch, i // PALETTE_COLUMNS, i % PALETTE_COLUMNS)
        first_recent_row = len(PALETTE_COLORS) // PALETTE_COLUMNS
        for i in range(MAX_RECENT_COLORS):
            sw = ColorSwatch("#FFFFFF", size=swatch_size)
            sw.setEnabled(False)
            sw.clicked.connect(self.color_picked)
            grid.addWidget(sw, first_recent_row + i // PALETTE_COLUMNS, i % PALETTE_COLUMNS)
            self._recent_swatches.append(sw)

    def set_recent(self, colors):
        for i, sw in enumerate(self._recent_swatches):
            if i < len(colors):
                sw.color = QColor(colors[i])
                sw.setEnabled(True)
                sw.setToolTip(colors[i])
            else:
                sw.color = QColor("#FFFFFF")
                sw.setEnabled(False)
                sw.setToolTip("")
            sw.update()


class BrushSizeSelector(QWidget):
    """Brush size: square preview + spinbox stacked vertically."""
    size_changed = pyqtSignal(int)

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(2)

        self._preview = QWidget()
        self._preview.setFixedSize(34, 34)
        self._preview.paintEvent = self._paint_preview
        layout.addWidget(self._preview, alignment=Qt.AlignHCenter)

        self.spin = QSpinBox()
        self.spin.setRange(BRUSH_MIN, BRUSH_MAX)
        self.spin.setValue(BRUSH_MIN)
        self.spin.setFixedWidth(52)
        self.spin.valueChanged.connect(self._on_value)
        layout.addWidget(self.spin, alignment=Qt.AlignHCenter)

    def set_value(self, size):
        self.spin.blockSignals(True)
        self.spin.setValue(size)
        self.spin.blockSignals(False)
        self._preview.update()

    def _paint_preview(self, event):
        p = QPainter(self._preview)
        p.fillRect(self._preview.rect(), QColor(255, 255, 255))
        p.setPen(QPen(QColor(200, 200, 200), 1))
        p.drawRect(0, 0, 33, 33)
        n = self.spin.value()
        cell = 6
        origin = (34 - n * cell) // 2
        p.fillRect(origin, origin, n * cell, n * cell, QColor(0, 0, 0))
        p.end()

    def _on_value(self, v):
        self._preview.update()
        self.size_changed.emit(v)


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------
def _settings():
    return QSettings(SETTINGS_ORG, APP_NAME)


class PaintApp(QMainWindow):
    def __init__(self, grid_size=None):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.resize(1000, 820)

        settings = _settings()
        if grid_size is None:
            grid_size = settings.value("grid_size", DEFAULT_GRID_SIZE, type=int)
        try:
            grid_size = parse_grid_size(grid_size)
        except GridSizeError as e:
            log.warning(f"[startup] {e} Using {DEFAULT_GRID_SIZE}.")
            grid_size = DEFAULT_GRID_SIZE
        self._export_dir = settings.value("export_dir", DEFAULT_DIR)

        self.session = EditorSession(grid_size)
        self.session.set_brush_size(settings.value("brush_size", BRUSH_MIN, type=int))

        self.canvas = PixelCanvas(self.session)
        scroll = QScrollArea()
        scroll.setAlignment(Qt.AlignCenter)
        scroll.setStyleSheet("QScrollArea { background: #808080; }")
        scroll.setWidget(self.canvas)
        self.setCentralWidget(scroll)

        self.canvas.edited.connect(self._on_edited)
        self.canvas.tool_changed.connect(self._on_tool_changed)
        self.canvas.color_changed.connect(self._sync_color)
        self.canvas.zoom_changed.connect(self._on_zoom_changed)
        self.canvas.brush_size_changed.connect(self._on_brush_size_from_canvas)
        self.canvas.cell_hovered.connect(self._on_cell_hovered)

        self._build_top_toolbar()
        self._build_menus()
        self._build_status_bar()

        self._on_tool_changed()
        self._on_brush_size_from_canvas(self.session.brush_size)
        self._sync_color()
        self._on_edited()
        self._restore_geometry()

    # ---- Top ribbon toolbar ----
    def _build_top_toolbar(self):
        tb = QToolBar("Main")
        tb.setMovable(False)
        self.addToolBar(Qt.TopToolBarArea, tb)

        ribbon = QWidget()
        ribbon_layout = QHBoxLayout(ribbon)
        ribbon_layout.setContentsMargins(4, 2, 4, 2)
        ribbon_layout.setSpacing(0)

        def _vsep():
            s = QFrame()
            s.setFrameShape(QFrame.VLine)
            s.setFrameShadow(QFrame.Sunken)
            return s

        def _ribbon_group(content, label_text):
            group = QWidget()
            vbox = QVBoxLayout(group)
            vbox.setContentsMargins(6, 2, 6, 0)
            vbox.setSpacing(1)
            vbox.addWidget(content)
            lbl = QLabel(label_text)
            lbl.setAlignment(Qt.AlignCenter)
            lbl.setStyleSheet("color: gray; font-size: 9px;")
            vbox.addWidget(lbl)
            return group

        # --- Undo/Redo group ---
        undo_redo = QWidget()
        ur_row = QHBoxLayout(undo_redo)
        ur_row.setContentsMargins(0, 0, 0, 0)
        ur_row.setSpacing(2)
        self._undo_btn = QToolButton()
        self._undo_btn.setIcon(_make_history_icon())
        self._undo_btn.setToolTip("Undo (Ctrl+Z)")
        self._undo_btn.setFixedSize(32, 32)
        self._undo_btn.clicked.connect(self.canvas.undo)
        ur_row.addWidget(self._undo_btn)
        self._redo_btn = QToolButton()
        self._redo_btn.setIcon(_make_history_icon(redo=True))
        self._redo_btn.setToolTip("Redo (Ctrl+Y)")
        self._redo_btn.setFixedSize(32, 32)
        self._redo_btn.clicked.connect(self.canvas.redo)
        ur_row.addWidget(self._redo_btn)
        ribbon_layout.addWidget(_ribbon_group(undo_redo, "History"))
        ribbon_layout.addWidget(_vsep())

        # --- Tools group (2x2 grid) ---
        self._tool_buttons = {}
        tools_widget = QWidget()
        tools_grid = QGridLayout(tools_widget)
        tools_grid.setSpacing(1)
        tools_grid.setContentsMargins(0, 0, 0, 0)
        for i, tt in enumerate(ToolType):
            tool_name = self.session.tool_name(tt)
            btn = QToolButton()
            btn.setIcon(_make_tool_icon(tt, size=28))
            btn.setIconSize(QSize(28, 28))
            btn.setFixedSize(34, 34)
            btn.setCheckable(True)
            btn.setToolTip(f"{tool_name} ({TOOL_SHORTCUT_LABELS[tt]})")
            btn.clicked.connect(lambda checked, t=tt: self.canvas.set_tool(t))
            tools_grid.addWidget(btn, i % 2, i // 2)
            self._tool_buttons[tt] = btn
        ribbon_layout.addWidget(_ribbon_group(tools_widget, "Tools"))
        ribbon_layout.addWidget(_vsep())

        # --- Brush Size group ---
        self._brush_size_sel = BrushSizeSelector()
        self._brush_size_sel.size_changed.connect(self.canvas.set_brush_size)
        ribbon_layout.addWidget(_ribbon_group(self._brush_size_sel, "Size"))
        ribbon_layout.addWidget(_vsep())

        # --- Colors group ---
        colors_widget = QWidget()
        colors_layout = QHBoxLayout(colors_widget)
        colors_layout.setContentsMargins(0, 0, 0, 0)
        colors_layout.setSpacing(4)
        self._color_sel = ColorSelector()
        self._color_sel.color_picked.connect(self._on_color_picked)
        colors_layout.addWidget(self._color_sel, 0, Qt.AlignVCenter)
        self._palette = ColorPalette(swatch_size=16)
        self._palette.color_picked.connect(self._on_color_picked)
        colors_layout.addWidget(self._palette)
        ribbon_layout.addWidget(_ribbon_group(colors_widget, "Colors"))

        ribbon_layout.addStretch()
        tb.addWidget(ribbon)

    def _on_tool_changed(self):
        current = self.session.tool_type
        for tt, btn in self._tool_buttons.items():
            btn.setChecked(tt == current)
        if hasattr(self, '_tool_label'):
            self._tool_label.setText(self.session.tool_name())

    def _on_brush_size_from_canvas(self, size):
        self._brush_size_sel.set_value(size)
        if hasattr(self, '_brush_label'):
            self._brush_label.setText(f"Size: {size}")

    def _on_color_picked(self, color):
        self.canvas.set_color(color)

    def _sync_color(self):
        self._color_sel.color = QColor(self.session.color)
        self._color_sel.update()

    def _on_edited(self):
        self._palette.set_recent(self.session.color_history.colors())
        self._undo_btn.setEnabled(self.session.history.can_undo())
        self._redo_btn.setEnabled(self.session.history.can_redo())
        self._update_title()

    # ---- Menus ----
    def _build_menus(self):
        mb = self.menuBar()

        file_menu = mb.addMenu("&File")
        self._add_action(file_menu, "&New", self._file_new, ["Ctrl+N"])
        self._add_action(file_menu, "&Export PNG...", self._file_export, ["Ctrl+S", "Ctrl+E"])
        file_menu.addSeparator()
        self._add_action(file_menu, "E&xit", self.close, ["Alt+F4"])

        edit_menu = mb.addMenu("&Edit")
        self._add_action(edit_menu, "&Undo", self.canvas.undo, UNDO_SHORTCUTS)
        self._add_action(edit_menu, "&Redo", self.canvas.redo, REDO_SHORTCUTS)
        edit_menu.addSeparator()
        self._add_action(edit_menu, "C&lear Canvas", self._edit_clear)

        view_menu = mb.addMenu("&View")
        self._add_action(view_menu, "Zoom &In", self.canvas.zoom_in, ["Ctrl+=", "Ctrl++"])
        self._add_action(view_menu, "Zoom &Out", self.canvas.zoom_out, ["Ctrl+-"])
        self._add_action(view_menu, "&Reset Zoom", self.canvas.zoom_reset, ["Ctrl+0"])

        img_menu = mb.addMenu("&Image")
        self._add_action(img_menu, "&Resize Grid...", self._image_resize)

        help_menu = mb.addMenu("&Help")
        self._add_action(help_menu, "&Keyboard Shortcuts", self._show_shortcuts)
        help_menu.addSeparator()
        self._add_action(help_menu, "&About", self._show_about)

    def _add_action(self, menu, text, slot, shortcuts=None):
        action = menu.addAction(text)
        def _handler(checked=False, _s=slot, _t=text):
            log.info(f"[action] {_t}")
            try:
                _s()
            except Exception as e:
                log.error(f"[action ERROR] {_t}: {e}", exc_info=True)
        action.triggered.connect(_handler)
        if shortcuts:
            action.setShortcuts([QKeySequence(s) for s in shortcuts])
            action.setShortcutContext(Qt.ApplicationShortcut)
            self.addAction(action)
        return action

    # ---- File actions ----
    def _check_save(self):
        """Returns True if OK to proceed (user exported or discarded)."""
        if not self.session.modified:
            return True
        ret = QMessageBox.question(
            self, APP_NAME,
            "The drawing has been modified. Export it first?",
            QMessageBox.Save | QMessageBox.Discard | QMessageBox.Cancel,
        )
        if ret == QMessageBox.Save:
            return self._file_export()
        return ret == QMessageBox.Discard

    def _file_new(self):
        if not self._check_save():
            return
        self.canvas.resize_grid(self.session.grid.width)

    def _file_export(self):
        start = os.path.join(self._export_dir or DEFAULT_DIR, "pixel-art.png")
        path, _ = QFileDialog.getSaveFileName(self, "Export PNG", start, "PNG (*.png)")
        if not path:
            return False
        if not path.lower().endswith(".png"):
            path += ".png"
        log.info(f"[export] Saving to {path}")
        if self.session.export_png(path):
            self._export_dir = os.path.dirname(path)
            self._update_title()
            return True
        log.error(f"[export] FAILED: {path}")
        QMessageBox.warning(self, APP_NAME, f"Could not export to {path}")
        return False

    # ---- Edit actions ----
    def _edit_clear(self):
        ret = QMessageBox.question(
            self, APP_NAME, "Clear the whole canvas?",
            QMessageBox.Yes | QMessageBox.No, QMessageBox.No)
        if ret == QMessageBox.Yes:
            self.canvas.clear()

    # ---- Image actions ----
    def _image_resize(self):
        size = self._prompt_grid_size()
        if size is None or not self._check_save():
            return
        log.info(f"[resize] {size}x{size}")
        self.canvas.resize_grid(size)
        self._update_size_label()

    def _prompt_grid_size(self):
        """Ask for a grid size until it is valid. None if cancelled."""
        label = f"Grid size ({MIN_GRID_SIZE}-{MAX_GRID_SIZE}):"
        text = str(self.session.grid.width)
        while True:
            text, ok = QInputDialog.getText(
                self, "Resize Grid", label, QLineEdit.Normal, text)
            if not ok:
                return None
            try:
                return parse_grid_size(text)
            except GridSizeError as e:
                log.info(f"[resize] rejected {text!r}: {e}")
                label = f"{e}\n\nGrid size ({MIN_GRID_SIZE}-{MAX_GRID_SIZE}):"

    # ---- Status bar ----
    def _build_status_bar(self):
        sb = self.statusBar()
        self._pos_label = QLabel("row 0, col 0")
        self._tool_label = QLabel(self.session.tool_name())
        self._brush_label = QLabel(f"Size: {self.session.brush_size}")
        self._size_label = QPushButton()
        self._size_label.setFlat(True)
        self._size_label.setCursor(Qt.PointingHandCursor)
        self._size_label.setStyleSheet(
            "QPushButton { text-decoration: underline; }"
            "QPushButton:hover { color: #0066cc; }")
        self._size_label.clicked.connect(self._image_resize)

        zoom_widget = QWidget()
        zoom_layout = QHBoxLayout(zoom_widget)
        zoom_layout.setContentsMargins(0, 0, 0, 0)
        zoom_layout.setSpacing(2)
        zoom_out_btn = QPushButton("-")
        zoom_out_btn.setFixedSize(22, 22)
        zoom_out_btn.clicked.connect(self.canvas.zoom_out)
        zoom_layout.addWidget(zoom_out_btn)
        self._zoom_label = QLabel(f"{int(self.session.zoom * 100)}%")
        self._zoom_label.setMinimumWidth(40)
        self._zoom_label.setAlignment(Qt.AlignCenter)
        zoom_layout.addWidget(self._zoom_label)
        zoom_in_btn = QPushButton("+")
        zoom_in_btn.setFixedSize(22, 22)
        zoom_in_btn.clicked.connect(self.canvas.zoom_in)
        zoom_layout.addWidget(zoom_in_btn)

        sb.addWidget(self._pos_label)
        sb.addWidget(self._tool_label)
        sb.addWidget(self._brush_label)
        sb.addPermanentWidget(self._size_label)
        sb.addPermanentWidget(zoom_widget)
        self._update_size_label()

    def _on_cell_hovered(self, row, col):
        self._pos_label.setText(f"row {row}, col {col}")

    def _on_zoom_changed(self, z):
        self._zoom_label.setText(f"{int(round(z * 100))}%")

    def _update_size_label(self):
        g = self.session.grid
        self._size_label.setText(f"{g.width} x {g.height} cells")

    # ---- Title ----
    def _update_title(self):
        mod = "*" if self.session.modified else ""
        self.setWindowTitle(f"Untitled{mod} - {APP_NAME}")
        if hasattr(self, '_size_label'):
            self._update_size_label()

    # ---- About ----
    def _show_shortcuts(self):
        QMessageBox.information(
            self, "Keyboard Shortcuts",
            "<h3>Tools</h3>"
            "<table cellpadding='2'>"
            "<tr><td><b>P</b></td><td>Pencil</td></tr>"
            "<tr><td><b>E</b></td><td>Eraser</td></tr>"
            "<tr><td><b>F</b></td><td>Flood fill</td></tr>"
            "<tr><td><b>I</b></td><td>Eyedropper (returns to pencil)</td></tr>"
            "</table>"
            "<h3>Edit</h3>"
            "<table cellpadding='2'>"
            "<tr><td><b>Ctrl+Z / Cmd+Z</b></td><td>Undo</td></tr>"
            "<tr><td><b>Ctrl+Y / Cmd+Y</b></td><td>Redo</td></tr>"
            "<tr><td><b>Ctrl+S</b></td><td>Export PNG</td></tr>"
            "</table>"
            "<h3>View</h3>"
            "<table cellpadding='2'>"
            "<tr><td><b>Scroll wheel</b></td><td>Zoom in/out</td></tr>"
            "<tr><td><b>Shift+scroll</b></td><td>Change brush size</td></tr>"
            "<tr><td><b>Ctrl+=</b></td><td>Zoom in</td></tr>"
            "<tr><td><b>Ctrl+-</b></td><td>Zoom out</td></tr>"
            "<tr><td><b>Ctrl+0</b></td><td>Reset zoom</td></tr>"
            "</table>"
        )

    def _show_about(self):
        QMessageBox.about(
            self, f"About {APP_NAME}",
            f"<h3>{APP_NAME}</h3>"
            "<p>A pixel-art editor built with Python and PyQt5.</p>"
            f"<p>Grids from {MIN_GRID_SIZE}x{MIN_GRID_SIZE} to "
            f"{MAX_GRID_SIZE}x{MAX_GRID_SIZE}, pencil, eraser, flood fill, "
            "eyedropper, undo/redo, zoom and PNG export.</p>",
        )

    # ---- Settings persistence ----
    def _save_settings(self):
        settings = _settings()
        settings.setValue("geometry", self.saveGeometry())
        settings.setValue("grid_size", self.session.grid.width)
        settings.setValue("brush_size", self.session.brush_size)
        settings.setValue("export_dir", self._export_dir)

    def _restore_geometry(self):
        geom = _settings().value("geometry")
        if geom:
            self.restoreGeometry(geom)

    # ---- Close event ----
    def closeEvent(self, event):
        if self._check_save():
            self._save_settings()
            event.accept()
        else:
            event.ignore()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def _setup_logging():
    log_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "debug.log")
    logging.basicConfig(filename=log_path, level=logging.DEBUG,
                        format="%(asctime)s %(message)s", force=True)


def main():
    import traceback
    _setup_logging()
    def _excepthook(t, v, tb):
        log.error("".join(traceback.format_exception(t, v, tb)))
        sys.__excepthook__(t, v, tb)
    sys.excepthook = _excepthook
    log.info("Starting")
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    grid_size = None
    # Grid size from command line: ./pixel-paint 32
    if len(sys.argv) > 1:
        try:
            grid_size = parse_grid_size(sys.argv[1])
        except GridSizeError as e:
            log.warning(f"[startup] {e}")
    window = PaintApp(grid_size)
    window.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
