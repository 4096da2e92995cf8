"""
Qt Scene Renderer - Draws statemap interaction artifacts on a QGraphicsScene.

This module provides the QtSceneRenderer class which implements the Renderer
contract with QGraphicsItem objects: vertical marker lines, text labels,
breakdown panels, legend highlighting and per-sample opacity painting.
"""

import itertools
import logging
from typing import Dict, Hashable, Optional, Tuple

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QColor, QFont, QPen
from PyQt5.QtWidgets import QGraphicsItem, QGraphicsLineItem, QGraphicsTextItem

from statemap.rendering.renderer import Anchor, MarkerKind, Renderer
from statemap.utils.error_handler import RenderError

# Configure logger
logger = logging.getLogger(__name__)


class QtSceneRenderer(Renderer):
    """
    Renderer backed by a QGraphicsScene.

    Screen coordinates handed in by the controller are relative to the
    statemap drawing area; ``offset_x`` and ``top_margin`` place that area
    within the scene. Legend entries and sample rectangles are drawn by the
    view and registered here so they can be highlighted and painted.
    """

    # Marker colors
    COLORS = {
        MarkerKind.PRIMARY: '#2c3e50',
        MarkerKind.DELTA: '#7f8c8d',
    }

    LABEL_COLOR = '#2c3e50'
    HIGHLIGHT_COLOR = '#e74c3c'
    HIGHLIGHT_WIDTH = 3

    # Stacking order
    MARKER_Z = 10
    LABEL_Z = 11
    PANEL_Z = 12

    FONT_FAMILY = 'Segoe UI'
    FONT_SIZE = 9

    def __init__(self, scene, height: float, offset_x: float = 0.0,
                 top_margin: float = 0.0, panel_x: Optional[float] = None,
                 panel_y: float = 0.0):
        """
        Initialize the renderer.

        Args:
            scene: QGraphicsScene to draw on
            height: Pixel height of the drawing area
            offset_x: Scene X of the drawing area's left edge
            top_margin: Scene Y of the drawing area's top edge
            panel_x: Scene X of breakdown panels (default: right of the labels)
            panel_y: Scene Y of the first breakdown panel
        """
        self.scene = scene
        self.height = height
        self.offset_x = offset_x
        self.top_margin = top_margin
        self.panel_x = panel_x if panel_x is not None else offset_x
        self.panel_y = panel_y

        self._handles = itertools.count(1)
        self._items: Dict[int, QGraphicsItem] = {}
        self._legend_items: Dict[Hashable, Tuple[QGraphicsItem, QPen]] = {}
        self._sample_items: Dict[Tuple[str, int], QGraphicsItem] = {}
        self._span_label: Optional[QGraphicsTextItem] = None

        self.font = QFont(self.FONT_FAMILY, self.FONT_SIZE)

    def register_legend_item(self, state_id, item):
        """
        Register the legend shape drawn for a state.

        Args:
            state_id: State the legend entry represents
            item: QAbstractGraphicsShapeItem showing the state's color
        """
        self._legend_items[state_id] = (item, QPen(item.pen()))

    def register_sample_item(self, entity_id: str, sample_index: int, item):
        """
        Register the rectangle drawn for one sample.

        Args:
            entity_id: Entity id
            sample_index: Sample index within the entity
            item: QGraphicsItem showing the sample
        """
        self._sample_items[(entity_id, sample_index)] = item

    def _add(self, item: QGraphicsItem) -> int:
        self.scene.addItem(item)
        handle = next(self._handles)
        self._items[handle] = item
        return handle

    def _text_item(self, text: str) -> QGraphicsTextItem:
        item = QGraphicsTextItem(text)
        item.setFont(self.font)
        item.setDefaultTextColor(QColor(self.LABEL_COLOR))
        return item

    def draw_marker(self, screen_x, kind=MarkerKind.PRIMARY):
        x = self.offset_x + screen_x

        line = QGraphicsLineItem(x, self.top_margin, x, self.top_margin + self.height)
        pen = QPen(QColor(self.COLORS.get(kind, self.LABEL_COLOR)), 1)
        if kind == MarkerKind.DELTA:
            pen.setStyle(Qt.DashLine)
        line.setPen(pen)
        line.setZValue(self.MARKER_Z)

        return self._add(line)

    def remove_marker(self, handle):
        item = self._items.pop(handle, None)
        if item is None:
            raise RenderError(f"Unknown render handle {handle!r}")
        self.scene.removeItem(item)

    def draw_label(self, screen_x, screen_y, text, anchor=Anchor.START):
        item = self._text_item(text)
        width = item.boundingRect().width()

        x = self.offset_x + screen_x
        if anchor == Anchor.END:
            x -= width
        elif anchor == Anchor.MIDDLE:
            x -= width / 2

        item.setPos(x, self.top_margin + screen_y)
        item.setZValue(self.LABEL_Z)
        return self._add(item)

    def draw_panel(self, title, lines):
        rows = [title] + [f"{value}  {text}" for value, text in lines]
        item = self._text_item('\n'.join(rows))
        item.setPos(self.panel_x, self.panel_y)
        item.setZValue(self.PANEL_Z)
        return self._add(item)

    def highlight_legend(self, state_id):
        entry = self._legend_items.get(state_id)
        if entry is None:
            logger.debug(f"No legend item registered for state {state_id!r}")
            return

        item, _ = entry
        item.setPen(QPen(QColor(self.HIGHLIGHT_COLOR), self.HIGHLIGHT_WIDTH))

    def unhighlight_legend(self, state_id):
        entry = self._legend_items.get(state_id)
        if entry is None:
            return

        item, original_pen = entry
        item.setPen(original_pen)

    def set_entity_paint(self, entity_id, sample_index, opacity):
        item = self._sample_items.get((entity_id, sample_index))
        if item is None:
            logger.debug(f"No sample item for {entity_id}[{sample_index}]")
            return
        item.setOpacity(opacity)

    def set_span_label(self, text):
        if self._span_label is None:
            self._span_label = self._text_item(text)
            self._span_label.setPos(self.offset_x, self.top_margin + self.height)
            self.scene.addItem(self._span_label)
        else:
            self._span_label.setPlainText(text)

    @property
    def span_label_text(self) -> str:
        return self._span_label.toPlainText() if self._span_label is not None else ''

    def live_items(self):
        """Get the items drawn through a handle that are still in the scene."""
        return list(self._items.values())
