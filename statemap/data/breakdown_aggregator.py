"""
Breakdown Aggregator - Computes state and tag occupancy over time.

This module provides the BreakdownAggregator class which turns sample lookups
into normalized breakdowns:
- the state composition of one entity at a point in time
- the time-weighted state occupancy of one entity over an interval
- the state totals across all entities at a point in time
- the occupancy of a state broken down by the values of one tag key, for a
  point or an interval, across many entities

Author: Statemap Explorer
Version: 1.0
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from statemap.data.dataset import StatemapDataset
from statemap.data.models import Entity, StateId

# Configure logger
logger = logging.getLogger(__name__)

ELLIPSIS_VALUE = '…'
TOTAL_VALUE = 'total'


@dataclass(frozen=True)
class StateTotal:
    """One state's share of a point-in-time breakdown across entities."""
    state: StateId
    name: str
    total: float
    percentage: float

    @property
    def text(self) -> str:
        return f"{int(self.total)} ({int(self.percentage)}%)"


@dataclass(frozen=True)
class StateBreakdown:
    """State totals at one time, as shown when a marker is placed."""
    time: float
    rows: Tuple[StateTotal, ...]
    total: float

    def as_dict(self) -> Dict[StateId, float]:
        return {row.state: row.total for row in self.rows}


@dataclass(frozen=True)
class TagRow:
    """One tag value's share of a tag breakdown."""
    value: object
    weight: float
    percentage: float
    synthetic: bool = False


@dataclass(frozen=True)
class TagBreakdown:
    """
    Occupancy of a state grouped by the values of one tag key.

    ``rows`` is sorted by descending weight (ties keep first-encountered
    order) and may end with a synthetic ellipsis row holding everything past
    the display budget. ``total`` is the sum of all percentages.
    """
    state: StateId
    tag_key: str
    point: bool
    entity_count: int
    rows: Tuple[TagRow, ...] = ()
    total: float = 0.0

    @property
    def total_row(self) -> TagRow:
        return TagRow(TOTAL_VALUE, sum(row.weight for row in self.rows),
                      self.total, synthetic=True)

    def as_dict(self) -> Dict[object, float]:
        return {row.value: row.percentage for row in self.rows}


@dataclass(frozen=True)
class PaintInstruction:
    """Opacity to apply to one sample's rectangle when painting a tag value."""
    entity_id: str
    sample_index: int
    opacity: float


class BreakdownAggregator:
    """
    Aggregates sample weights into state and tag breakdowns.

    All methods are pure functions of the (read-only) dataset and their
    arguments. Times passed here are absolute, i.e. they include the
    dataset's begin offset.
    """

    def __init__(self, dataset: StatemapDataset):
        """
        Initialize the aggregator.

        Args:
            dataset: The dataset to aggregate over
        """
        self.dataset = dataset

    def state_at(self, entity: Entity, time: float) -> Dict[StateId, float]:
        """
        Get the state composition of an entity at a point in time.

        Args:
            entity: Entity to inspect
            time: Absolute time

        Returns:
            Dict[StateId, float]: {state: 1.0} for a single-state sample, the
            blend weights verbatim for a blended one, or {} if no sample is
            active at ``time``
        """
        index = self.dataset.index_for(entity)
        idx = index.locate(time)
        if idx is None:
            return {}
        return index.samples[idx].state_weights()

    def state_over_interval(self, entity: Entity, time: float,
                            end_time: float) -> Dict[StateId, float]:
        """
        Get the time-weighted state occupancy of an entity over an interval.

        Each sample contributes its state weights scaled by the fraction of
        the interval it covers. Within dataset bounds the result sums to 1.

        Args:
            entity: Entity to inspect
            time: Absolute start of the interval
            end_time: Absolute end of the interval

        Returns:
            Dict[StateId, float]: Occupancy by state; {} for an inverted range
        """
        if end_time < time:
            logger.debug(f"Inverted interval [{time}, {end_time}] for {entity.name}")
            return {}

        width = end_time - time
        if width == 0:
            return self.state_at(entity, time)

        occupancy = defaultdict(float)
        index = self.dataset.index_for(entity)

        for sample, _, span in index.iter_range(time, end_time):
            share = span / width
            for state, weight in sample.state_weights().items():
                occupancy[state] += weight * share

        return dict(occupancy)

    def state_totals(self, time: float,
                     entities: Optional[Iterable[Entity]] = None) -> StateBreakdown:
        """
        Sum the state composition of every entity at a point in time.

        Args:
            time: Absolute time
            entities: Entities to include (all entities by default)

        Returns:
            StateBreakdown: Rows in state catalogue order, then any state the
            catalogue does not declare, in the order encountered
        """
        if entities is None:
            entities = self.dataset.entities

        totals: Dict[StateId, float] = {}
        grand_total = 0.0

        for entity in entities:
            for state, weight in self.state_at(entity, time).items():
                totals[state] = totals.get(state, 0.0) + weight
                grand_total += weight

        ordered = [state for state in self.dataset.states if state in totals]
        ordered += [state for state in totals if state not in self.dataset.states]

        rows = tuple(
            StateTotal(
                state=state,
                name=self.dataset.state_name(state),
                total=totals[state],
                percentage=(totals[state] / grand_total) * 100 if grand_total else 0.0,
            )
            for state in ordered
        )

        return StateBreakdown(time=time, rows=rows, total=grand_total)

    def tag_keys(self, state: StateId) -> List[str]:
        """
        Get the sorted tag keys defined for a state.

        Args:
            state: State to look up

        Returns:
            List[str]: Tag keys (empty if the state has no tags)
        """
        keys = set()
        for definition in self.dataset.tag_definitions:
            if definition.state_id == state:
                keys.update(definition.values.keys())
        return sorted(keys)

    def tag_values(self, state: StateId, tag_key: str) -> List[object]:
        """Get the distinct values of ``tag_key`` for a state, in catalogue order."""
        values = []
        for definition in self.dataset.tag_definitions:
            if definition.state_id != state:
                continue
            value = definition.value_for(tag_key)
            if value is not None and value not in values:
                values.append(value)
        return values

    def tag_breakdown(self, entities: Sequence[Entity], time: float,
                      end_time: Optional[float], state: StateId, tag_key: str,
                      budget: Optional[int] = None) -> TagBreakdown:
        """
        Break down the time spent in ``state`` by the values of ``tag_key``.

        For a point query (no ``end_time``) every active sample counts with
        span 1 and the divisor is the number of entities; for a range the
        divisor is the range width times the number of entities, so the
        percentages are time-normalized.

        Args:
            entities: Entities to aggregate over
            time: Absolute time (or start of range)
            end_time: Absolute end of range, or None for a point query
            state: State being inspected
            tag_key: Tag key to group by
            budget: Maximum number of value rows; the rest are folded into a
                synthetic ellipsis row. None disables truncation.

        Returns:
            TagBreakdown: The breakdown (with no rows if nothing matched)
        """
        entity_count = len(entities)
        point = end_time is None

        if point:
            divisor = entity_count
        else:
            divisor = (end_time - time) * entity_count

        if divisor <= 0:
            return TagBreakdown(state, tag_key, point, entity_count)

        by_value: Dict[object, float] = {}
        definitions = self.dataset.tag_definitions

        for entity in entities:
            index = self.dataset.index_for(entity)

            for sample, _, span in index.iter_range(time, end_time):
                if not sample.state.weight_of(state):
                    continue

                if not sample.tag_weights:
                    continue

                for def_id, weight in sample.tag_weights:
                    definition = definitions[def_id]

                    if definition.state_id != state:
                        continue

                    value = definition.value_for(tag_key)
                    if value is None:
                        continue

                    by_value[value] = by_value.get(value, 0.0) + span * weight

        # sorted() is stable, so ties keep first-encountered order
        ranked = sorted(by_value.items(), key=lambda item: -item[1])

        rows = [TagRow(value, weight, (weight / divisor) * 100.0) for value, weight in ranked]
        total = sum(row.percentage for row in rows)

        if budget is not None and len(rows) > budget:
            shown, excluded = rows[:max(budget, 0)], rows[max(budget, 0):]
            shown.append(TagRow(
                ELLIPSIS_VALUE,
                sum(row.weight for row in excluded),
                sum(row.percentage for row in excluded),
                synthetic=True,
            ))
            rows = shown

        return TagBreakdown(state, tag_key, point, entity_count, tuple(rows), total)

    def tag_paint(self, state: StateId, tag_key: str, tag_value,
                  entities: Optional[Iterable[Entity]] = None) -> List[PaintInstruction]:
        """
        Compute how strongly each sample is attributed to one tag value.

        Every sample in ``state`` that carries tag weights is matched against
        the tag definitions of that state whose ``tag_key`` equals
        ``tag_value``; a sample with a non-zero matching ratio is painted with
        opacity ``1 - ratio``.

        Args:
            state: State being inspected
            tag_key: Active tag key
            tag_value: Tag value to paint
            entities: Entities to paint (all entities by default)

        Returns:
            List[PaintInstruction]: One instruction per matching sample
        """
        if entities is None:
            entities = self.dataset.entities

        matching = {
            definition.def_id
            for definition in self.dataset.tag_definitions
            if definition.state_id == state and definition.value_for(tag_key) == tag_value
        }

        instructions = []
        if not matching:
            return instructions

        for entity in entities:
            for idx, sample in enumerate(entity.samples):
                if not sample.state.weight_of(state) or not sample.tag_weights:
                    continue

                ratio = sum(weight for def_id, weight in sample.tag_weights
                            if def_id in matching)
                if ratio == 0:
                    continue

                instructions.append(PaintInstruction(entity.id, idx, 1 - ratio))

        logger.debug(f"Painting {len(instructions)} samples for {tag_key}={tag_value!r}")
        return instructions
