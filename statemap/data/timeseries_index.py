"""
TimeSeries Index - Locates samples by time for one entity.

This module provides the TimeSeriesIndex class which wraps an entity's sorted
sample sequence and answers two questions:
- which sample is active at a given time (binary search)
- which samples cover a time range, and for how long each one overlaps it

Author: Statemap Explorer
Version: 1.0
"""

import logging
from bisect import bisect_right
from typing import Callable, Iterator, Optional, Sequence, Tuple

from statemap.data.models import Sample, SampleExtent

# Configure logger
logger = logging.getLogger(__name__)

# Visitor signature: visit(sample, index, clipped_span)
Visitor = Callable[[Sample, int, float], None]


class TimeSeriesIndex:
    """
    Sorted sample store for a single entity.

    The sample at index i holds from its time until the next sample's time
    (exclusive), or until ``end_time`` for the last sample. The index holds
    no state across queries; every range walk starts from a fresh search.
    """

    def __init__(self, samples: Sequence[Sample], end_time: float):
        """
        Initialize the index.

        Args:
            samples: Samples sorted ascending by time (may be empty)
            end_time: Dataset end-time (timeWidth + begin)
        """
        self._samples = tuple(samples)
        self._times = [sample.time for sample in self._samples]
        self._end_time = end_time

    @property
    def samples(self) -> Tuple[Sample, ...]:
        return self._samples

    @property
    def end_time(self) -> float:
        return self._end_time

    def __len__(self):
        return len(self._samples)

    def locate(self, time: float) -> Optional[int]:
        """
        Find the index of the sample active at ``time``.

        Returns the largest index i with samples[i].time <= time; duplicate
        times resolve to the later index. Times past the last sample resolve
        to the last sample, which is held through the dataset end.

        Args:
            time: Absolute time in nanoseconds

        Returns:
            Optional[int]: Sample index, or None if the sequence is empty or
            ``time`` precedes the first sample
        """
        if not self._times or self._times[0] > time:
            return None

        return bisect_right(self._times, time) - 1

    def iter_range(self, time: float,
                   end_time: Optional[float] = None) -> Iterator[Tuple[Sample, int, float]]:
        """
        Walk the samples covering ``[time, end_time]``.

        Yields ``(sample, index, clipped_span)`` where clipped_span is the
        overlap between the range and the sample's own interval, clipped to
        the dataset end. Without ``end_time`` this is a point query: exactly
        one tuple is produced, with span 1, if a sample is active at ``time``.

        Args:
            time: Absolute start of the range
            end_time: Absolute end of the range, or None for a point query

        Yields:
            tuple: (sample, index, clipped_span)
        """
        if end_time is None:
            idx = self.locate(time)
            if idx is not None:
                yield self._samples[idx], idx, 1
            return

        if end_time < time:
            logger.debug(f"Ignoring inverted range [{time}, {end_time}]")
            return

        if not self._samples:
            return

        idx = self.locate(time)
        if idx is None:
            # The range starts before the first sample
            idx = 0

        length = len(self._samples)

        for idx in range(idx, length):
            sample = self._samples[idx]

            if sample.time > end_time:
                return

            span_start = max(sample.time, time)

            if idx + 1 < length:
                sample_end = self._times[idx + 1]
            else:
                sample_end = self._end_time

            span = min(sample_end, end_time) - span_start

            yield sample, idx, max(span, 0)

    def for_each_in_range(self, time: float, end_time: Optional[float],
                          visit: Visitor) -> int:
        """
        Invoke ``visit(sample, index, clipped_span)`` for every sample in range.

        Args:
            time: Absolute start of the range
            end_time: Absolute end of the range, or None for a point query
            visit: Callback receiving each sample

        Returns:
            int: Number of samples visited
        """
        visited = 0
        for sample, idx, span in self.iter_range(time, end_time):
            visit(sample, idx, span)
            visited += 1
        return visited

    def extent(self, index: int) -> Optional[SampleExtent]:
        """
        Resolve a sample index to its start, end and content.

        Args:
            index: Sample index

        Returns:
            Optional[SampleExtent]: Extent, or None if the index is out of range
        """
        if index < 0 or index >= len(self._samples):
            return None

        sample = self._samples[index]

        if index + 1 < len(self._samples):
            end_time = self._times[index + 1]
        else:
            end_time = self._end_time

        return SampleExtent(
            index=index,
            time=sample.time,
            end_time=end_time,
            state=sample.state,
            tag_weights=sample.tag_weights,
        )
