"""
Gesture Vocabulary

Responsibility:
Define the user actions the selection controller understands.
Pointer and keyboard input is normalized into these values by the
presentation layer; no execution logic lives here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class GestureType(Enum):
    """Types of user interaction."""
    # Viewport
    PAN = "pan"
    ZOOM = "zoom"

    # Markers
    PRIMARY_CLICK = "primary_click"
    MODIFIER_CLICK = "modifier_click"
    DISMISS_MARKER = "dismiss_marker"
    DISMISS_DETAIL = "dismiss_detail"

    # State drilldown
    LEGEND_CLICK = "legend_click"
    TAG_KEY_CLICK = "tag_key_click"
    TAG_VALUE_CLICK = "tag_value_click"


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float = 0.0
    type: GestureType = GestureType.PAN


@dataclass(frozen=True)
class Zoom:
    factor: float
    type: GestureType = GestureType.ZOOM


@dataclass(frozen=True)
class PrimaryClick:
    """Click on the statemap, optionally on a specific entity sample."""
    pixel_x: float
    pixel_y: float = 0.0
    entity: Optional[str] = None
    sample_index: Optional[int] = None
    type: GestureType = GestureType.PRIMARY_CLICK


@dataclass(frozen=True)
class ModifierClick:
    """Shift-click: measure the time from the primary marker to a pixel."""
    pixel_x: float
    type: GestureType = GestureType.MODIFIER_CLICK


@dataclass(frozen=True)
class DismissMarker:
    type: GestureType = GestureType.DISMISS_MARKER


@dataclass(frozen=True)
class DismissDetail:
    type: GestureType = GestureType.DISMISS_DETAIL


@dataclass(frozen=True)
class LegendClick:
    state_id: object
    type: GestureType = GestureType.LEGEND_CLICK


@dataclass(frozen=True)
class TagKeyClick:
    tag_key: str
    type: GestureType = GestureType.TAG_KEY_CLICK


@dataclass(frozen=True)
class TagValueClick:
    tag_value: object
    type: GestureType = GestureType.TAG_VALUE_CLICK


Gesture = Union[Pan, Zoom, PrimaryClick, ModifierClick, DismissMarker,
                DismissDetail, LegendClick, TagKeyClick, TagValueClick]
