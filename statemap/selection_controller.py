"""
Selection Controller - Drives the interactive statemap.

This module provides the SelectionController class which is the sole writer
of the session context. It turns gestures into:
- viewport changes (pan, zoom) and the re-derived marker positions
- time markers with a state breakdown at the marked time
- delta sub-markers measuring the time between two points
- entity detail popups for the sample under a click
- state drilldowns with tag breakdowns and tag value painting

Every gesture runs to completion and settles all derived state before
returning; gestures whose preconditions are not met are no-ops. A gesture
interrupted by a failing collaborator is undone as a whole.
"""

import copy
import logging
import math
from dataclasses import fields
from functools import wraps
from typing import Callable, Dict, Hashable, List, Optional, Tuple

from statemap.config import ViewerConfig
from statemap.data.breakdown_aggregator import BreakdownAggregator, TagBreakdown
from statemap.data.dataset import StatemapDataset
from statemap.data.models import BlendedStates, Entity, SampleExtent
from statemap.gestures import Gesture, GestureType
from statemap.rendering.renderer import Anchor, MarkerKind, Renderer
from statemap.rendering.viewport import Viewport, ViewportTransform
from statemap.session import (
    DeltaMarker, EntityDetail, Selection, SessionContext, TimeMarker,
)
from statemap.utils.error_handler import StatemapError, guard_gesture, log_statemap_error
from statemap.utils.time_format import (
    delta_text, format_percentage, span_label, time_to_text, time_units,
)

# Configure logger
logger = logging.getLogger(__name__)


def atomic_gesture(func):
    """
    Decorator running a gesture handler as one unit.

    Artifacts the handler discards are only removed from the renderer once
    the handler has completed. If a StatemapError escapes the handler, the
    artifacts it drew are released, the renderer setters it called are
    reverted and the session is restored before the error propagates.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if self._undo is not None:
            return func(self, *args, **kwargs)

        saved = (copy.deepcopy(self.session), dict(self._opacity), self._span_text)
        self._undo, self._pending_removals = [], []
        try:
            result = func(self, *args, **kwargs)
        except StatemapError:
            self._rollback(self._undo, *saved)
            raise
        else:
            self._commit(self._pending_removals)
            return result
        finally:
            self._undo = self._pending_removals = None
    return wrapper


class SelectionController:
    """
    Orchestrates the viewport transform, the time-series indexes and the
    breakdown aggregator in response to gestures.

    The controller owns its SessionContext exclusively; callers read it
    through ``session`` but route every change through a gesture.
    """

    def __init__(self, dataset: StatemapDataset, renderer: Renderer,
                 config: Optional[ViewerConfig] = None,
                 session: Optional[SessionContext] = None):
        """
        Initialize the controller.

        Args:
            dataset: Read-only statemap dataset
            renderer: Rendering collaborator
            config: Viewer preferences (defaults if omitted)
            session: Session context to own (a fresh one if omitted)
        """
        self.dataset = dataset
        self.renderer = renderer
        self.config = config or ViewerConfig()
        self.session = session or SessionContext()

        self.transform = ViewportTransform(dataset.pixel_width, dataset.pixel_height,
                                           dataset.time_width)
        self.aggregator = BreakdownAggregator(dataset)

        # Undo log and deferred removals of the gesture in progress
        self._undo: Optional[List[Callable[[], None]]] = None
        self._pending_removals: Optional[List[Hashable]] = None

        # Renderer-side state the session does not hold
        self._opacity: Dict[Tuple[str, int], float] = {}
        self._span_text = ''

        self._handlers: Dict[GestureType, Callable[[Gesture], object]] = {
            GestureType.PAN: lambda g: self.pan(g.dx, g.dy),
            GestureType.ZOOM: lambda g: self.zoom(g.factor),
            GestureType.PRIMARY_CLICK: lambda g: self.primary_click(
                g.pixel_x, g.pixel_y, g.entity, g.sample_index),
            GestureType.MODIFIER_CLICK: lambda g: self.modifier_click(g.pixel_x),
            GestureType.DISMISS_MARKER: lambda g: self.dismiss_marker(),
            GestureType.DISMISS_DETAIL: lambda g: self.dismiss_detail(),
            GestureType.LEGEND_CLICK: lambda g: self.legend_click(g.state_id),
            GestureType.TAG_KEY_CLICK: lambda g: self.tag_key_click(g.tag_key),
            GestureType.TAG_VALUE_CLICK: lambda g: self.tag_value_click(g.tag_value),
        }

        self._update_span_label()
        logger.info(f"SelectionController initialized for {len(dataset)} entities "
                    f"({dataset.pixel_width}x{dataset.pixel_height} px)")

    @property
    def viewport(self) -> Viewport:
        return self.session.viewport

    def dispatch(self, gesture: Gesture):
        """
        Handle one gesture.

        Args:
            gesture: Any gesture from statemap.gestures

        Returns:
            The handler's result (None for no-ops)
        """
        handler = self._handlers.get(getattr(gesture, 'type', None))
        if handler is None:
            logger.warning(f"Ignoring unknown gesture {gesture!r}")
            return None
        return handler(gesture)

    # ------------------------------------------------------------------
    # Viewport gestures
    # ------------------------------------------------------------------

    @guard_gesture()
    @atomic_gesture
    def pan(self, dx: float, dy: float = 0.0) -> Viewport:
        """
        Pan the statemap by a pixel offset.

        Args:
            dx: Horizontal offset in pixels
            dy: Vertical offset in pixels

        Returns:
            Viewport: The resulting viewport
        """
        viewport = self.transform.pan_by(self.session.viewport, dx, dy)
        if viewport is not self.session.viewport:
            self._apply_viewport(viewport)
        return self.session.viewport

    @guard_gesture()
    @atomic_gesture
    def zoom(self, factor: float) -> Viewport:
        """
        Zoom around the center of the drawing area.

        With a marker placed (and ``center_marker_on_zoom`` enabled), the
        viewport is then re-centered on the marker.

        Args:
            factor: Scale multiplier (2 zooms in, 0.5 zooms out)

        Returns:
            Viewport: The resulting viewport
        """
        current = self.session.viewport
        viewport = self.transform.zoom_by(current, factor)

        marker = self.session.marker
        if marker is not None and viewport is not current and self.config.center_marker_on_zoom:
            viewport = self.transform.center_on(viewport, marker.time)

        if viewport is not current:
            self._apply_viewport(viewport)
        return self.session.viewport

    # ------------------------------------------------------------------
    # Marker gestures
    # ------------------------------------------------------------------

    @guard_gesture()
    @atomic_gesture
    def primary_click(self, pixel_x: float, pixel_y: float = 0.0,
                      entity: Optional[str] = None,
                      sample_index: Optional[int] = None) -> Optional[TimeMarker]:
        """
        Place (or replace) the time marker under a pixel.

        The previous marker, its delta marker, its breakdown and the previous
        entity detail are released first. When the click hit an entity, a
        detail popup for the sample under the click is produced as well.

        Args:
            pixel_x: X coordinate within the drawing area
            pixel_y: Y coordinate within the drawing area
            entity: Id or name of the entity under the click, if any
            sample_index: Index of the sample under the click, if known

        Returns:
            Optional[TimeMarker]: The new marker, or None for a malformed click
        """
        pixel_x = self._clamp_pixel(pixel_x)
        if pixel_x is None:
            return None

        self._remove_marker()
        self._remove_detail()

        time = self.transform.pixel_to_time(self.session.viewport, pixel_x)
        marker = TimeMarker(time=time)
        self.session.marker = marker
        self._draw_marker(marker)
        self._show_state_breakdown()

        hit = self.dataset.entity(entity) if entity is not None else None
        if hit is not None:
            self._show_detail(hit, sample_index, time)

        logger.debug(f"Marker placed at {time_units(time)} (px={pixel_x})")
        self._refresh_tag_breakdown()
        return marker

    @guard_gesture()
    @atomic_gesture
    def modifier_click(self, pixel_x: float) -> Optional[DeltaMarker]:
        """
        Attach (or replace) the delta marker measuring from the primary marker.

        Args:
            pixel_x: X coordinate of the second point

        Returns:
            Optional[DeltaMarker]: The delta marker, or None without a primary marker
        """
        marker = self.session.marker
        if marker is None:
            logger.debug("Ignoring modifier click without a marker")
            return None

        pixel_x = self._clamp_pixel(pixel_x)
        if pixel_x is None:
            return None

        self._remove_delta()

        time = self.transform.pixel_to_time(self.session.viewport, pixel_x)
        delta = DeltaMarker(time=time, delta=time - marker.time)
        self.session.delta = delta
        self._draw_delta(delta)

        logger.debug(f"Delta marker at {time_units(time)}: {delta_text(delta.delta)}")
        return delta

    @guard_gesture()
    @atomic_gesture
    def dismiss_marker(self) -> None:
        """Remove the time marker, its delta marker and its breakdown."""
        if self.session.marker is None:
            return

        self._remove_marker()
        self._refresh_tag_breakdown()

    @guard_gesture()
    @atomic_gesture
    def dismiss_detail(self) -> None:
        """Remove the entity detail popup and un-pin the tag breakdown."""
        if self.session.detail is None:
            return

        self._remove_detail()
        self._refresh_tag_breakdown()

    # ------------------------------------------------------------------
    # State drilldown gestures
    # ------------------------------------------------------------------

    @guard_gesture()
    @atomic_gesture
    def legend_click(self, state_id) -> Optional[Selection]:
        """
        Toggle the drilldown into a state's tags.

        Clicking the selected state again exits the drilldown; clicking a
        different state switches to it with no tag key selected.

        Args:
            state_id: State whose legend entry was clicked

        Returns:
            Optional[Selection]: The new selection, or None when exiting
        """
        if self.dataset.notags:
            return None

        if not self._known_state(state_id):
            logger.debug(f"Ignoring legend click on unknown state {state_id!r}")
            return None

        previous = self._clear_selection()
        if previous is not None and previous.state_id == state_id:
            return None

        selection = Selection(
            state_id=state_id,
            statemap_id=self.dataset.statemap_id,
            tag_keys=tuple(self.aggregator.tag_keys(state_id)),
        )
        self.session.selection = selection
        self._highlight(state_id)
        self._refresh_tag_breakdown()

        logger.debug(f"Inspecting state {self.dataset.state_name(state_id)} "
                     f"with tag keys {list(selection.tag_keys)}")
        return selection

    @guard_gesture()
    @atomic_gesture
    def tag_key_click(self, tag_key: str) -> Optional[TagBreakdown]:
        """
        Toggle the tag key the drilldown is grouped by.

        Args:
            tag_key: Tag key that was clicked

        Returns:
            Optional[TagBreakdown]: The recomputed breakdown (None when cleared)
        """
        selection = self.session.selection
        if selection is None or tag_key not in selection.tag_keys:
            logger.debug(f"Ignoring tag key click on {tag_key!r}")
            return None

        self._clear_paint()

        if selection.active_tag_key == tag_key:
            selection.active_tag_key = None
        else:
            selection.active_tag_key = tag_key

        self._refresh_tag_breakdown()
        return self.session.tag_breakdown

    @guard_gesture()
    @atomic_gesture
    def tag_value_click(self, tag_value) -> Optional[int]:
        """
        Toggle painting of the samples attributed to one tag value.

        Args:
            tag_value: Tag value that was clicked

        Returns:
            Optional[int]: Number of samples painted, or None when unpainting
            or when the gesture does not apply
        """
        selection = self.session.selection
        if selection is None or selection.active_tag_key is None:
            return None

        key = selection.active_tag_key
        if tag_value not in self.aggregator.tag_values(selection.state_id, key):
            logger.debug(f"Ignoring click on unknown tag value {tag_value!r}")
            return None

        previous = selection.active_tag_value
        self._clear_paint()

        if previous == tag_value:
            return None

        instructions = self.aggregator.tag_paint(selection.state_id, key, tag_value)
        for instruction in instructions:
            self._paint(instruction.entity_id, instruction.sample_index, instruction.opacity)
            selection.painted.append((instruction.entity_id, instruction.sample_index))

        selection.active_tag_value = tag_value
        return len(instructions)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def _apply_viewport(self, viewport: Viewport):
        self.session.viewport = viewport

        if self.session.marker is not None:
            self._release(self.session.marker.handles)
            self._draw_marker(self.session.marker)

        if self.session.delta is not None:
            self._release(self.session.delta.handles)
            self._draw_delta(self.session.delta)

        if self.session.detail is not None:
            detail = self.session.detail
            self._release(detail.handles)
            entity = self.dataset.entity(detail.entity_id)
            detail.handles.append(self._draw_detail_label(entity, detail.text, detail.time))

        self._update_span_label()

        if self.session.selection is not None:
            self._refresh_tag_breakdown()

        logger.debug(f"Viewport now scale={viewport.scale:g} "
                     f"translate=({viewport.translate_x:g}, {viewport.translate_y:g})")

    def _update_span_label(self):
        viewport = self.session.viewport
        self._set_span_label(span_label(
            self.transform.visible_span(viewport),
            self.transform.pixel_to_time(viewport, 0),
            viewport.scale, self.dataset.begin, self.dataset.start,
        ))

    def _marker_text(self, time: float) -> str:
        return time_to_text(time, self.session.viewport.scale,
                            self.dataset.begin, self.dataset.start)

    def _label_anchor(self, pixel_x: float) -> str:
        # Labels grow towards the middle of the drawing area
        return Anchor.START if pixel_x < self.transform.width / 2 else Anchor.END

    def _draw_marker(self, marker: TimeMarker):
        pixel_x = self.transform.time_to_pixel(self.session.viewport, marker.time)

        if not self.transform.is_visible(pixel_x):
            marker.screen_x = None
            return

        marker.screen_x = pixel_x
        marker.handles.append(self._drawn(
            self.renderer.draw_marker, pixel_x, MarkerKind.PRIMARY))
        marker.handles.append(self._drawn(
            self.renderer.draw_label,
            pixel_x, 0, self._marker_text(marker.time), self._label_anchor(pixel_x)))

    def _draw_delta(self, delta: DeltaMarker):
        pixel_x = self.transform.time_to_pixel(self.session.viewport, delta.time)

        if not self.transform.is_visible(pixel_x):
            delta.screen_x = None
            return

        delta.screen_x = pixel_x
        delta.handles.append(self._drawn(
            self.renderer.draw_marker, pixel_x, MarkerKind.DELTA))
        delta.handles.append(self._drawn(
            self.renderer.draw_label,
            pixel_x, 0, delta_text(delta.delta), self._label_anchor(pixel_x)))

    def _show_state_breakdown(self):
        marker = self.session.marker
        breakdown = self.aggregator.state_totals(marker.time + self.dataset.begin)
        self.session.state_breakdown = breakdown

        lines = [(row.name, row.text) for row in breakdown.rows]
        self.session.state_breakdown_handle = self._drawn(
            self.renderer.draw_panel,
            f"States at {time_units(marker.time)}", lines)

    def _show_detail(self, entity: Entity, sample_index: Optional[int], time: float):
        index = self.dataset.index_for(entity)

        if sample_index is None:
            sample_index = index.locate(time + self.dataset.begin)

        extent = index.extent(sample_index) if sample_index is not None else None
        if extent is None:
            logger.debug(f"No sample to describe for {entity.name} at {time_units(time)}")
            return

        text = self._detail_text(entity, extent)
        detail = EntityDetail(entity_id=entity.id, sample_index=extent.index, text=text,
                              time=time)
        detail.handles.append(self._draw_detail_label(entity, text, time))
        self.session.detail = detail

    def _detail_text(self, entity: Entity, extent: SampleExtent) -> str:
        text = self.dataset.entity_label(entity)

        if isinstance(extent.state, BlendedStates):
            state, weight, total = extent.state.dominant()
            percent = math.floor((weight / total) * 100) if total else 0
            text += f", {percent}% {self.dataset.state_name(state)}"
        else:
            text += f", {self.dataset.state_name(extent.state.state)}"

        text += f" at {time_units(extent.time)} for {time_units(extent.duration)}"
        return text

    def _draw_detail_label(self, entity: Entity, text: str, time: float):
        strip_height = self.config.strip_height
        top = entity.position * strip_height

        # Upper-half strips point their detail downwards, lower-half upwards
        anchor = Anchor.END if top < self.transform.height / 2 else Anchor.START
        screen_y = top + strip_height / 2 + self.session.viewport.translate_y

        # The detail sits at the clicked time, kept inside the drawing area
        screen_x = self.transform.clamp_pixel(
            self.transform.time_to_pixel(self.session.viewport, time))

        return self._drawn(self.renderer.draw_label, screen_x, screen_y, text, anchor)

    def _refresh_tag_breakdown(self):
        if self.session.tag_breakdown_handle is not None:
            self._discard(self.session.tag_breakdown_handle)
            self.session.tag_breakdown_handle = None

        selection = self.session.selection
        if selection is None or selection.active_tag_key is None:
            self.session.tag_breakdown = None
            return

        entities: List[Entity] = list(self.dataset.entities)
        header = ''

        detail = self.session.detail
        if detail is not None:
            pinned = self.dataset.entity(detail.entity_id)
            entities = [pinned]
            header = f"{self.dataset.entity_kind} {pinned.name} "

        header += f"by {selection.active_tag_key} "

        begin = self.dataset.begin
        marker = self.session.marker
        if marker is not None:
            time, end_time = marker.time + begin, None
            header += f"at {time_units(marker.time)}"
        else:
            left, right = self.transform.visible_range(self.session.viewport)
            time, end_time = left + begin, right + begin
            header += "over span"

        header = header[0].upper() + header[1:] + ':'

        breakdown = self.aggregator.tag_breakdown(
            entities, time, end_time, selection.state_id, selection.active_tag_key,
            budget=self.config.tag_display_budget,
        )
        self.session.tag_breakdown = breakdown

        lines = [(str(row.value), format_percentage(row.percentage)) for row in breakdown.rows]
        lines.append((str(breakdown.total_row.value), format_percentage(breakdown.total)))
        self.session.tag_breakdown_handle = self._drawn(self.renderer.draw_panel, header, lines)

    # ------------------------------------------------------------------
    # Releasing artifacts
    # ------------------------------------------------------------------

    def _release(self, handles: list):
        while handles:
            self._discard(handles.pop())

    def _remove_delta(self):
        if self.session.delta is not None:
            self._release(self.session.delta.handles)
            self.session.delta = None

    def _remove_marker(self):
        self._remove_delta()

        if self.session.marker is not None:
            self._release(self.session.marker.handles)
            self.session.marker = None

        if self.session.state_breakdown_handle is not None:
            self._discard(self.session.state_breakdown_handle)
            self.session.state_breakdown_handle = None
        self.session.state_breakdown = None

    def _remove_detail(self):
        if self.session.detail is not None:
            self._release(self.session.detail.handles)
            self.session.detail = None

    def _clear_paint(self):
        selection = self.session.selection
        if selection is None:
            return

        for entity_id, sample_index in selection.painted:
            self._paint(entity_id, sample_index, 1.0)
        selection.painted.clear()
        selection.active_tag_value = None

    def _clear_selection(self) -> Optional[Selection]:
        selection = self.session.selection
        if selection is None:
            return None

        self._clear_paint()
        self._unhighlight(selection.state_id)
        self.session.selection = None
        self._refresh_tag_breakdown()
        return selection

    # ------------------------------------------------------------------
    # Renderer calls
    # ------------------------------------------------------------------

    def _record(self, action: Callable[[], None]):
        if self._undo is not None:
            self._undo.append(action)

    def _drawn(self, method, *args):
        handle = method(*args)
        self._record(lambda: self.renderer.remove_marker(handle))
        return handle

    def _discard(self, handle):
        if self._pending_removals is not None:
            self._pending_removals.append(handle)
        else:
            self.renderer.remove_marker(handle)

    def _highlight(self, state_id):
        self.renderer.highlight_legend(state_id)
        self._record(lambda: self.renderer.unhighlight_legend(state_id))

    def _unhighlight(self, state_id):
        self.renderer.unhighlight_legend(state_id)
        self._record(lambda: self.renderer.highlight_legend(state_id))

    def _paint(self, entity_id: str, sample_index: int, opacity: float):
        key = (entity_id, sample_index)
        previous = self._opacity.get(key, 1.0)

        self.renderer.set_entity_paint(entity_id, sample_index, opacity)
        if opacity >= 1.0:
            self._opacity.pop(key, None)
        else:
            self._opacity[key] = opacity
        self._record(lambda: self.renderer.set_entity_paint(entity_id, sample_index, previous))

    def _set_span_label(self, text: str):
        previous = self._span_text
        self.renderer.set_span_label(text)
        self._span_text = text
        self._record(lambda: self.renderer.set_span_label(previous))

    def _commit(self, pending: List[Hashable]):
        for handle in pending:
            try:
                self.renderer.remove_marker(handle)
            except StatemapError as e:
                log_statemap_error(e, "releasing artifact")

    def _rollback(self, undo: List[Callable[[], None]], session: SessionContext,
                  opacity: Dict[Tuple[str, int], float], span_text: str):
        logger.warning(f"Undoing {len(undo)} renderer change(s) of an interrupted gesture")
        for action in reversed(undo):
            try:
                action()
            except StatemapError as e:
                log_statemap_error(e, "gesture rollback")

        for field_ in fields(SessionContext):
            setattr(self.session, field_.name, getattr(session, field_.name))
        self._opacity = opacity
        self._span_text = span_text

    # ------------------------------------------------------------------
    # Input checks
    # ------------------------------------------------------------------

    def _clamp_pixel(self, pixel_x) -> Optional[float]:
        if not isinstance(pixel_x, (int, float)) or not math.isfinite(pixel_x):
            logger.debug(f"Ignoring malformed pixel {pixel_x!r}")
            return None
        return self.transform.clamp_pixel(pixel_x)

    def _known_state(self, state_id) -> bool:
        if state_id in self.dataset.states:
            return True
        return any(definition.state_id == state_id
                   for definition in self.dataset.tag_definitions)
