"""
Time formatting utilities for the statemap explorer.

Times in a statemap are nanoseconds. These helpers produce the short labels
used on markers, the span label and the breakdown panels.
"""

import math
from typing import Optional, Sequence, Union

Number = Union[int, float]

TIME_SUFFIXES = ('ns', 'μs', 'ms', 's')
NANOSECONDS_PER_SECOND = 1000000000


def time_units(timeval: Number) -> str:
    """
    Format a nanosecond value with the largest fitting unit.

    The value is stepped by factors of 1000 through ns, μs, ms and s, and
    truncated (not rounded) to two fractional digits. Zero is rendered as
    the literal "0".

    Args:
        timeval: Time in nanoseconds (may be negative or fractional)

    Returns:
        str: Formatted time, e.g. "1.23ms"
    """
    if timeval == 0:
        return '0'

    if timeval < 0:
        return '-' + time_units(-timeval)

    step = 0
    scaled = timeval
    while scaled > 1000 and step < len(TIME_SUFFIXES) - 1:
        scaled /= 1000
        step += 1

    divisor = 1000 ** step

    # Integers are truncated exactly; floats go through a single division
    if isinstance(timeval, int):
        hundredths = (timeval * 100) // divisor
    else:
        hundredths = math.floor(timeval * 100 / divisor)

    return f"{hundredths // 100}.{hundredths % 100:02d}{TIME_SUFFIXES[step]}"


def time_to_text(time: Number, scale: float = 1.0, begin: Number = 0,
                 start: Optional[Sequence[int]] = None) -> str:
    """
    Describe a viewport time offset for a marker label.

    Args:
        time: Offset in nanoseconds from the dataset's begin
        scale: Current viewport scale
        begin: Dataset begin offset in nanoseconds
        start: Optional epoch reference as [seconds, nanosecond remainder]

    Returns:
        str: e.g. "offset = 1.50ms, 3.50ms overall (Epoch + 1526000000s)"
    """
    if scale == 1 and begin == 0:
        text = f"offset = {time_units(time)}"
    else:
        text = f"offset = {time_units(time)}, {time_units(time + begin)} overall"

    if start:
        seconds = start[0] + (time + start[1]) / NANOSECONDS_PER_SECOND
        text += f" (Epoch + {math.floor(seconds)}s)"

    return text


def span_label(visible_span: Number, left_edge_time: Number, scale: float = 1.0,
               begin: Number = 0, start: Optional[Sequence[int]] = None) -> str:
    """
    Build the label describing the visible time window.

    Args:
        visible_span: Nanoseconds visible in the drawing area
        left_edge_time: Offset of the left edge of the drawing area
        scale: Current viewport scale
        begin: Dataset begin offset
        start: Optional epoch reference

    Returns:
        str: Span label text
    """
    text = f"span = {time_units(visible_span)}"

    if scale != 1 or begin != 0:
        text += '; ' + time_to_text(left_edge_time, scale, begin, start)

    return text


def delta_text(delta: Number) -> str:
    """Label for the signed time between the primary marker and a delta marker."""
    sign = '+' if delta >= 0 else '-'
    return f"delta = {sign}{time_units(abs(delta))}"


def format_percentage(percentage: float) -> str:
    """Format a percentage with two decimals, e.g. "66.67%"."""
    return f"{percentage:.2f}%"
