"""
Data model for statemap datasets.

A sample is a tagged variant: either a single state (``SingleState``) or a
blend of several states with fractional weights (``BlendedStates``). Entities
own an ordered sequence of samples; tag definitions explain what a sample's
tag weights mean. All of these are built once at load time and never mutated.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Mapping, Optional, Tuple, Union

StateId = Hashable
TagDefId = int


@dataclass(frozen=True)
class SingleState:
    """A sample that spent its whole interval in one state."""
    state: StateId

    def weights(self) -> Dict[StateId, float]:
        return {self.state: 1.0}

    def weight_of(self, state: StateId) -> float:
        return 1.0 if self.state == state else 0.0


@dataclass(frozen=True)
class BlendedStates:
    """A sample whose interval is shared between several states."""
    states: Tuple[Tuple[StateId, float], ...]

    def weights(self) -> Dict[StateId, float]:
        return dict(self.states)

    def weight_of(self, state: StateId) -> float:
        for candidate, weight in self.states:
            if candidate == state:
                return weight
        return 0.0

    def dominant(self) -> Tuple[StateId, float, float]:
        """
        Get the state with the largest weight.

        Returns:
            tuple: (state, weight, total weight of the blend)
        """
        best_state, best_weight = None, 0.0
        total = 0.0
        for state, weight in self.states:
            total += weight
            if best_state is None or weight > best_weight:
                best_state, best_weight = state, weight
        return best_state, best_weight, total


SampleState = Union[SingleState, BlendedStates]


@dataclass(frozen=True)
class Sample:
    """
    One recorded interval of an entity.

    The sample holds from ``time`` until the next sample's time, or until the
    dataset end-time for the last sample of an entity.
    """
    time: int
    state: SampleState
    tag_weights: Optional[Tuple[Tuple[TagDefId, float], ...]] = None

    @property
    def is_blend(self) -> bool:
        return isinstance(self.state, BlendedStates)

    def state_weights(self) -> Dict[StateId, float]:
        return self.state.weights()


@dataclass(frozen=True)
class SampleExtent:
    """A sample resolved against its neighbours: where it starts and ends."""
    index: int
    time: int
    end_time: int
    state: SampleState
    tag_weights: Optional[Tuple[Tuple[TagDefId, float], ...]] = None

    @property
    def duration(self) -> int:
        return self.end_time - self.time


@dataclass(frozen=True)
class StateDefinition:
    """A state as declared by the dataset producer."""
    value: StateId
    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class TagDefinition:
    """
    Catalogue entry explaining one tag id.

    ``values`` maps tag keys (e.g. "reason") to their value for this tag.
    The raw tag identity is kept in ``tag``.
    """
    def_id: TagDefId
    state_id: StateId
    tag: Optional[str] = None
    values: Mapping[str, object] = field(default_factory=dict)

    def value_for(self, tag_key: str):
        return self.values.get(tag_key)


@dataclass(frozen=True)
class Entity:
    """A tracked subject (thread, CPU, queue) and its sample history."""
    id: str
    name: str
    position: int
    statemap_id: str
    samples: Tuple[Sample, ...]
    description: Optional[str] = None
