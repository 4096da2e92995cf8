"""
TimeSeries Index Tests

Point lookups and range walks over one entity's sorted samples.
"""

import pytest

from statemap.data.models import Sample, SingleState
from statemap.data.timeseries_index import TimeSeriesIndex


def _index(times, end_time):
    return TimeSeriesIndex([Sample(time=t, state=SingleState(i)) for i, t in enumerate(times)],
                           end_time)


# =============================================================================
# LOCATE
# =============================================================================

class TestLocate:

    def test_cpu0_scenario(self, cpu0_dataset, cpu0):
        index = cpu0_dataset.index_for(cpu0)

        assert index.locate(150) == 1
        assert index.samples[1].state.state == "run"
        assert index.locate(300) == 2

    def test_exact_sample_time_selects_that_sample(self):
        index = _index([0, 100, 300], 500)

        assert index.locate(0) == 0
        assert index.locate(100) == 1
        assert index.locate(99) == 0

    def test_past_last_sample_is_last_index(self):
        index = _index([0, 100], 500)

        assert index.locate(10_000) == 1

    def test_before_first_sample(self):
        index = _index([50, 100], 500)

        assert index.locate(10) is None

    def test_empty_sequence(self):
        assert _index([], 500).locate(10) is None

    def test_duplicate_times_resolve_to_later_index(self):
        index = _index([0, 100, 100, 200], 500)

        assert index.locate(100) == 2
        assert index.locate(150) == 2

    def test_unique_interval_property(self):
        times = [0, 3, 10, 11, 40]
        index = _index(times, 50)

        for t in range(0, 50):
            i = index.locate(t)
            assert times[i] <= t
            if i + 1 < len(times):
                assert t < times[i + 1]


# =============================================================================
# RANGE WALKS
# =============================================================================

class TestIterRange:

    def test_point_query_yields_one_sample_with_unit_span(self):
        index = _index([0, 100, 300], 500)

        visited = list(index.iter_range(150))

        assert [(idx, span) for _, idx, span in visited] == [(1, 1)]

    def test_point_query_before_first_sample_yields_nothing(self):
        assert list(_index([50], 500).iter_range(10)) == []

    def test_spans_are_clipped_to_range(self):
        index = _index([0, 100, 300], 500)

        spans = [(idx, span) for _, idx, span in index.iter_range(50, 350)]

        assert spans == [(0, 50), (1, 200), (2, 50)]

    def test_last_sample_is_clipped_to_dataset_end(self):
        index = _index([0, 100], 300)

        spans = [(idx, span) for _, idx, span in index.iter_range(0, 1000)]

        assert spans == [(0, 100), (1, 200)]

    def test_range_starting_before_first_sample_starts_at_first(self):
        index = _index([100, 200], 300)

        spans = [(idx, span) for _, idx, span in index.iter_range(0, 250)]

        assert spans == [(0, 100), (1, 50)]

    def test_walk_stops_after_range_end(self):
        index = _index([0, 100, 200, 300], 400)

        indexes = [idx for _, idx, _ in index.iter_range(0, 150)]

        assert indexes == [0, 1]

    def test_inverted_range_yields_nothing(self):
        index = _index([0, 100], 300)

        assert list(index.iter_range(200, 100)) == []

    def test_empty_sequence_range(self):
        assert list(_index([], 300).iter_range(0, 100)) == []

    def test_for_each_in_range_counts_visits(self):
        index = _index([0, 100, 300], 500)
        seen = []

        count = index.for_each_in_range(0, 500, lambda s, i, span: seen.append((i, span)))

        assert count == 3
        assert seen == [(0, 100), (1, 200), (2, 200)]


class TestExtent:

    def test_extent_uses_next_sample_and_dataset_end(self):
        index = _index([0, 100, 300], 500)

        assert index.extent(1).end_time == 300
        assert index.extent(1).duration == 200
        assert index.extent(2).end_time == 500

    @pytest.mark.parametrize("bad_index", [-1, 3])
    def test_out_of_range_extent(self, bad_index):
        assert _index([0, 100, 300], 500).extent(bad_index) is None
