"""
Viewport Transform - Maps between screen pixels and statemap time.

This module provides the Viewport value and the ViewportTransform class which
manages:
- Panning and zooming (X is scaled, Y is only translated)
- Boundary clamping so the statemap never scrolls past its edges
- Pixel to time conversion and its inverse
- Visible time range calculations for span labels and breakdowns
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Tuple

# Configure logger
logger = logging.getLogger(__name__)

# Fraction of the width kept between a clamped pixel and the right edge
EDGE_MARGIN = 1e-9


@dataclass(frozen=True)
class Viewport:
    """
    Affine pan/zoom state of the statemap.

    Invariant: ``scale >= 1``, ``translate_x`` in ``[-(width*scale-width), 0]``
    and ``translate_y`` in ``[-(height*scale-height), 0]``.
    """
    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0

    @property
    def is_identity(self) -> bool:
        return self.scale == 1 and self.translate_x == 0 and self.translate_y == 0

    def as_matrix(self) -> Tuple[float, float, float, float, float, float]:
        """The equivalent 2D affine matrix (a, b, c, d, e, f)."""
        return (self.scale, 0.0, 0.0, 1.0, self.translate_x, self.translate_y)


IDENTITY = Viewport()


def _finite(*values) -> bool:
    return all(isinstance(v, (int, float)) and math.isfinite(v) for v in values)


class ViewportTransform:
    """
    Pure pan/zoom operations over Viewport values.

    Every operation takes the current Viewport and returns a new one (or the
    same one when the request changes nothing). Times here are offsets from
    the dataset's begin, in ``[0, time_width]``.
    """

    def __init__(self, width: float, height: float, time_width: float):
        """
        Initialize the transform.

        Args:
            width: Pixel width of the drawing area
            height: Pixel height of the drawing area
            time_width: Nanoseconds spanned by the full statemap

        Raises:
            ValueError: If width or time_width is not positive
        """
        if width <= 0 or time_width <= 0:
            raise ValueError(
                f"Viewport needs a positive width and time width, "
                f"got width={width}, time_width={time_width}"
            )

        self.width = width
        self.height = height
        self.time_width = time_width

    def clamp(self, viewport: Viewport) -> Viewport:
        """
        Clamp translations into the bounds allowed by the current scale.

        Args:
            viewport: Viewport to clamp

        Returns:
            Viewport: Clamped viewport
        """
        min_x = -(self.width * viewport.scale - self.width)
        min_y = -(self.height * viewport.scale - self.height)

        translate_x = min(0.0, max(min_x, viewport.translate_x))
        translate_y = min(0.0, max(min_y, viewport.translate_y))

        if translate_x == viewport.translate_x and translate_y == viewport.translate_y:
            return viewport

        return replace(viewport, translate_x=translate_x, translate_y=translate_y)

    def pan_by(self, viewport: Viewport, dx: float, dy: float) -> Viewport:
        """
        Translate the viewport, then clamp.

        Args:
            viewport: Current viewport
            dx: Horizontal translation in pixels
            dy: Vertical translation in pixels

        Returns:
            Viewport: Panned viewport
        """
        if not _finite(dx, dy):
            logger.debug(f"Ignoring non-finite pan ({dx}, {dy})")
            return viewport

        panned = self.clamp(replace(
            viewport,
            translate_x=viewport.translate_x + dx,
            translate_y=viewport.translate_y + dy,
        ))

        return viewport if panned == viewport else panned

    def zoom_by(self, viewport: Viewport, scale_factor: float,
                anchor: Optional[float] = None) -> Viewport:
        """
        Scale the viewport around an anchor pixel.

        The time under ``anchor`` is preserved. Y is never scaled. If the
        resulting scale would drop below 1, the whole viewport snaps back to
        the identity transform.

        Args:
            viewport: Current viewport
            scale_factor: Multiplier for the scale (> 0)
            anchor: Pixel to keep fixed (default: horizontal center)

        Returns:
            Viewport: Zoomed viewport
        """
        if anchor is None:
            anchor = self.width / 2

        if not _finite(scale_factor, anchor) or scale_factor <= 0:
            logger.debug(f"Ignoring invalid zoom factor {scale_factor} at {anchor}")
            return viewport

        scale = viewport.scale * scale_factor
        if scale < 1:
            return viewport if viewport == IDENTITY else IDENTITY

        zoomed = self.clamp(Viewport(
            scale=scale,
            translate_x=viewport.translate_x * scale_factor + (1 - scale_factor) * anchor,
            translate_y=viewport.translate_y * scale_factor,
        ))

        return viewport if zoomed == viewport else zoomed

    def center_on(self, viewport: Viewport, time: float,
                  pixel: Optional[float] = None) -> Viewport:
        """
        Translate the viewport so that ``time`` lands on ``pixel``, then clamp.

        Args:
            viewport: Current viewport
            time: Time offset to bring into view
            pixel: Target pixel (default: horizontal center)

        Returns:
            Viewport: Re-centered viewport
        """
        if pixel is None:
            pixel = self.width / 2

        if not _finite(time, pixel):
            return viewport

        # Algebraic rearrangement of time_to_pixel()
        translate_x = -((time / self.time_width) * self.width * viewport.scale - pixel)
        centered = self.clamp(replace(viewport, translate_x=translate_x))

        return viewport if centered == viewport else centered

    def pixel_to_time(self, viewport: Viewport, pixel: float) -> float:
        """
        Get the time offset under a pixel.

        The result is a base time derived from the pan, plus an offset within
        the visible window derived from the scale.

        Args:
            viewport: Current viewport
            pixel: X coordinate within the drawing area

        Returns:
            float: Time offset in nanoseconds
        """
        base = (-viewport.translate_x / (viewport.scale * self.width)) * self.time_width
        offset = (pixel / self.width) * (self.time_width / viewport.scale)
        return base + offset

    def time_to_pixel(self, viewport: Viewport, time: float) -> float:
        """
        Get the pixel showing a time offset (inverse of pixel_to_time).

        Args:
            viewport: Current viewport
            time: Time offset in nanoseconds

        Returns:
            float: X coordinate (may fall outside the drawing area)
        """
        return (time / self.time_width) * self.width * viewport.scale + viewport.translate_x

    def clamp_pixel(self, pixel: float) -> float:
        """
        Clamp a pixel coordinate into the drawing area ``[0, width)``.

        The right edge maps just inside the area, far enough that a time
        derived from it still converts back to a visible pixel.
        """
        return min(self.width * (1 - EDGE_MARGIN), max(0.0, pixel))

    def is_visible(self, pixel: float) -> bool:
        return 0 <= pixel < self.width

    def visible_span(self, viewport: Viewport) -> float:
        """Nanoseconds visible in the drawing area."""
        return self.time_width / viewport.scale

    def visible_range(self, viewport: Viewport) -> Tuple[float, float]:
        """Time offsets at the left and right edges of the drawing area."""
        return (self.pixel_to_time(viewport, 0),
                self.pixel_to_time(viewport, self.width))
