"""
Statemap data layer.
Provides the dataset loader, the per-entity time-series index and the
breakdown aggregator.
"""

from .dataset import StatemapDataset
from .timeseries_index import TimeSeriesIndex
from .breakdown_aggregator import BreakdownAggregator

__all__ = ['StatemapDataset', 'TimeSeriesIndex', 'BreakdownAggregator']
