"""
Rendering collaborator contract.

The selection controller never touches a scene or document directly. It
tells a Renderer *what* to draw (a marker at this pixel, a label with this
text, a legend entry highlighted) and keeps the returned handles so it can
release every artifact it created.

This module provides the Renderer interface and RecordingRenderer, an
in-memory implementation used for headless sessions and tests.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Set, Tuple

from statemap.utils.error_handler import RenderError

# Configure logger
logger = logging.getLogger(__name__)


class MarkerKind:
    """Kinds of vertical markers."""
    PRIMARY = "primary"
    DELTA = "delta"


class Anchor:
    """Text anchors for labels."""
    START = "start"
    MIDDLE = "middle"
    END = "end"


class Renderer(ABC):
    """
    Interface implemented by the presentation layer.

    Handles returned by the draw methods are opaque to the caller and are
    released with ``remove_marker``.
    """

    @abstractmethod
    def draw_marker(self, screen_x: float, kind: str = MarkerKind.PRIMARY) -> Hashable:
        """Draw a vertical marker at ``screen_x`` and return its handle."""

    @abstractmethod
    def remove_marker(self, handle: Hashable) -> None:
        """Remove an artifact previously returned by any draw method."""

    @abstractmethod
    def draw_label(self, screen_x: float, screen_y: float, text: str,
                   anchor: str = Anchor.START) -> Hashable:
        """Draw a text label and return its handle."""

    @abstractmethod
    def draw_panel(self, title: str, lines: Sequence[Tuple[str, str]]) -> Hashable:
        """Draw a breakdown panel of (value, text) rows and return its handle."""

    @abstractmethod
    def highlight_legend(self, state_id) -> None:
        """Highlight the legend entry of a state."""

    @abstractmethod
    def unhighlight_legend(self, state_id) -> None:
        """Remove the highlight from the legend entry of a state."""

    @abstractmethod
    def set_entity_paint(self, entity_id: str, sample_index: int, opacity: float) -> None:
        """Set the fill opacity of one sample's rectangle (1.0 restores it)."""

    @abstractmethod
    def set_span_label(self, text: str) -> None:
        """Replace the text of the label describing the visible span."""


@dataclass
class RenderedArtifact:
    """A live artifact held by the RecordingRenderer."""
    handle: int
    kind: str
    screen_x: Optional[float] = None
    screen_y: Optional[float] = None
    text: Optional[str] = None
    anchor: Optional[str] = None
    lines: Tuple[Tuple[str, str], ...] = ()


@dataclass
class RecordingRenderer(Renderer):
    """
    Renderer that records what it was asked to draw.

    Useful for headless operation (the CLI) and for asserting that the
    controller releases every artifact it creates.
    """
    artifacts: Dict[int, RenderedArtifact] = field(default_factory=dict)
    highlighted: Set[Hashable] = field(default_factory=set)
    paint: Dict[Tuple[str, int], float] = field(default_factory=dict)
    span_label: str = ''
    calls: List[Tuple] = field(default_factory=list)

    def __post_init__(self):
        self._handles = itertools.count(1)

    def _add(self, artifact_kind: str, **attrs) -> int:
        handle = next(self._handles)
        self.artifacts[handle] = RenderedArtifact(handle=handle, kind=artifact_kind, **attrs)
        return handle

    def draw_marker(self, screen_x, kind=MarkerKind.PRIMARY):
        self.calls.append(('draw_marker', screen_x, kind))
        return self._add(f"marker:{kind}", screen_x=screen_x)

    def remove_marker(self, handle):
        self.calls.append(('remove_marker', handle))
        if handle not in self.artifacts:
            raise RenderError(f"Unknown render handle {handle!r}")
        del self.artifacts[handle]

    def draw_label(self, screen_x, screen_y, text, anchor=Anchor.START):
        self.calls.append(('draw_label', screen_x, screen_y, text, anchor))
        return self._add('label', screen_x=screen_x, screen_y=screen_y,
                         text=text, anchor=anchor)

    def draw_panel(self, title, lines):
        self.calls.append(('draw_panel', title, tuple(lines)))
        return self._add('panel', text=title, lines=tuple(lines))

    def highlight_legend(self, state_id):
        self.calls.append(('highlight_legend', state_id))
        self.highlighted.add(state_id)

    def unhighlight_legend(self, state_id):
        self.calls.append(('unhighlight_legend', state_id))
        self.highlighted.discard(state_id)

    def set_entity_paint(self, entity_id, sample_index, opacity):
        self.calls.append(('set_entity_paint', entity_id, sample_index, opacity))
        if opacity >= 1.0:
            self.paint.pop((entity_id, sample_index), None)
        else:
            self.paint[(entity_id, sample_index)] = opacity

    def set_span_label(self, text):
        self.calls.append(('set_span_label', text))
        self.span_label = text

    def live(self, kind: Optional[str] = None) -> List[RenderedArtifact]:
        """
        Get the artifacts that have not been removed.

        Args:
            kind: Optional artifact kind filter (e.g. "label", "marker:primary")

        Returns:
            List[RenderedArtifact]: Live artifacts in creation order
        """
        return [artifact for artifact in self.artifacts.values()
                if kind is None or artifact.kind == kind]
