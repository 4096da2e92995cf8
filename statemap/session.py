"""
Session context for an interactive statemap.

All transient interaction state lives in one SessionContext owned by the
SelectionController: the viewport, the time marker and its delta sub-marker,
the entity detail popup, the state drilldown selection and the breakdowns
cached for display. Nothing here persists across sessions.
"""

from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Tuple

from statemap.data.breakdown_aggregator import StateBreakdown, TagBreakdown
from statemap.rendering.viewport import IDENTITY, Viewport


@dataclass
class TimeMarker:
    """
    The user-placed "timebar".

    ``time`` is an offset from the dataset begin. ``screen_x`` is derived
    from the viewport and is None while the marker is scrolled out of view.
    """
    time: float
    screen_x: Optional[float] = None
    handles: List[Hashable] = field(default_factory=list)

    @property
    def hidden(self) -> bool:
        return self.screen_x is None


@dataclass
class DeltaMarker:
    """Secondary marker showing the signed time from the primary marker."""
    time: float
    delta: float
    screen_x: Optional[float] = None
    handles: List[Hashable] = field(default_factory=list)

    @property
    def hidden(self) -> bool:
        return self.screen_x is None


@dataclass
class EntityDetail:
    """Popup describing the sample under a click on one entity."""
    entity_id: str
    sample_index: int
    text: str
    time: float = 0.0
    handles: List[Hashable] = field(default_factory=list)


@dataclass
class Selection:
    """The live state drilldown (at most one)."""
    state_id: object
    statemap_id: str
    tag_keys: Tuple[str, ...] = ()
    active_tag_key: Optional[str] = None
    active_tag_value: object = None
    painted: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def painting(self) -> bool:
        return self.active_tag_value is not None


@dataclass
class SessionContext:
    """Exclusively-owned interaction state, mutated only by the controller."""
    viewport: Viewport = IDENTITY
    marker: Optional[TimeMarker] = None
    delta: Optional[DeltaMarker] = None
    detail: Optional[EntityDetail] = None
    selection: Optional[Selection] = None
    state_breakdown: Optional[StateBreakdown] = None
    tag_breakdown: Optional[TagBreakdown] = None
    state_breakdown_handle: Optional[Hashable] = None
    tag_breakdown_handle: Optional[Hashable] = None

    @property
    def marker_active(self) -> bool:
        return self.marker is not None

    @property
    def inspecting(self) -> bool:
        return self.selection is not None
