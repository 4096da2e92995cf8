"""
Statemap Explorer

Interactive engine for exploring statemaps: per-entity state timelines with
pan and zoom, time markers with state breakdowns, and drilldown of a state's
occupancy by tag values.
"""

__version__ = "1.0.0"
__author__ = "Statemap Explorer Development Team"

from .config import ViewerConfig
from .data.dataset import StatemapDataset
from .selection_controller import SelectionController

__all__ = ['ViewerConfig', 'StatemapDataset', 'SelectionController']
