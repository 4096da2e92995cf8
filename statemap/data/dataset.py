"""
Statemap Dataset Loader
=======================

This module loads the time-series dataset that accompanies a rendered
statemap: the global parameters (time width, begin offset, drawing area
size, labeling), the state and tag catalogues, and every entity's sample
sequence.

The StatemapDataset is responsible for:
- Parsing the compact sample encoding ({t, s, g}) into typed samples
- Coercing the numeric string keys JSON forces on state and tag ids
- Validating the catalogue references and sample ordering
- Building one TimeSeriesIndex per entity

Author: Statemap Explorer
Version: 1.0
"""

import json
import logging
import os
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from statemap.data.models import (
    BlendedStates, Entity, Sample, SingleState, StateDefinition, StateId,
    TagDefinition,
)
from statemap.data.timeseries_index import TimeSeriesIndex
from statemap.utils.error_handler import DatasetError

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_ENTITY_PREFIX = 'statemap-entity-'
DEFAULT_STATEMAP_ID = 'statemap'
DEFAULT_PIXEL_WIDTH = 862
DEFAULT_STRIP_HEIGHT = 10

# Keys of a tag record that are not tag keys
RESERVED_TAG_FIELDS = ('state', 'tag')


def coerce_id(key):
    """
    Convert numeric string ids (as JSON object keys force) back to ints.

    Args:
        key: State or tag identifier

    Returns:
        int if ``key`` is an integral string, otherwise ``key`` unchanged
    """
    if isinstance(key, str):
        stripped = key.strip()
        digits = stripped[1:] if stripped.startswith('-') else stripped
        if digits.isdigit():
            return int(stripped)
    return key


def _parse_time(value, entity: str, index: int, source: Optional[str]) -> int:
    if isinstance(value, bool):
        raise DatasetError(f"Invalid sample time {value!r}", entity, index, source)

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass

    raise DatasetError(f"Invalid sample time {value!r}", entity, index, source)


class StatemapDataset:
    """
    Read-only dataset shared by every component of the explorer.

    Entities and tag definitions are constructed once here and never
    mutated afterward, so the dataset may be shared freely.
    """

    def __init__(self, time_width: int, begin: int = 0,
                 entities: Optional[List[Entity]] = None,
                 states: Optional[List[StateDefinition]] = None,
                 tag_definitions: Optional[List[TagDefinition]] = None,
                 pixel_width: int = DEFAULT_PIXEL_WIDTH,
                 pixel_height: Optional[int] = None,
                 start: Optional[Tuple[int, int]] = None,
                 entity_prefix: str = DEFAULT_ENTITY_PREFIX,
                 entity_kind: str = 'Entity',
                 statemap_id: str = DEFAULT_STATEMAP_ID,
                 notags: Optional[bool] = None):
        """
        Initialize the dataset.

        Args:
            time_width: Total nanoseconds spanned by the statemap
            begin: Offset of the visible window's start from the origin
            entities: Entities, each with samples sorted by time
            states: State catalogue
            tag_definitions: Tag catalogue, indexed by def_id
            pixel_width: Width of the drawing area
            pixel_height: Height of the drawing area
            start: Epoch reference as (seconds, nanosecond remainder)
            entity_prefix: Prefix of entity element ids
            entity_kind: Display label for entities (e.g. "CPU")
            statemap_id: Identifier of the statemap these entities belong to
            notags: Whether tag drilldown is disabled (default: no tags)
        """
        if time_width is None or time_width <= 0:
            raise DatasetError(f"timeWidth must be positive, got {time_width!r}")

        if pixel_width is None or pixel_width <= 0:
            raise DatasetError(f"pixelWidth must be positive, got {pixel_width!r}")

        self.time_width = time_width
        self.begin = begin
        self.start = tuple(start) if start else None
        self.pixel_width = pixel_width
        self.entity_prefix = entity_prefix
        self.entity_kind = entity_kind
        self.statemap_id = statemap_id

        self.entities: Tuple[Entity, ...] = tuple(entities or [])
        self.states: Dict[StateId, StateDefinition] = {
            state.value: state for state in (states or [])
        }
        self.tag_definitions: Tuple[TagDefinition, ...] = tuple(tag_definitions or [])
        self.notags = (not self.tag_definitions) if notags is None else notags

        if pixel_height is None or pixel_height <= 0:
            pixel_height = max(1, len(self.entities) * DEFAULT_STRIP_HEIGHT)
        self.pixel_height = pixel_height

        self._by_id = {entity.id: entity for entity in self.entities}
        self._by_name = {entity.name: entity for entity in self.entities}
        self._indexes = {
            entity.id: TimeSeriesIndex(entity.samples, self.end_time)
            for entity in self.entities
        }

    @property
    def end_time(self) -> int:
        """Absolute dataset end-time (timeWidth + begin)."""
        return self.time_width + self.begin

    def __len__(self):
        return len(self.entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def entity(self, key: str) -> Optional[Entity]:
        """
        Look up an entity by id or by name.

        Args:
            key: Entity id (prefix + name) or bare name

        Returns:
            Optional[Entity]: The entity, or None if unknown
        """
        return self._by_id.get(key) or self._by_name.get(key)

    def index_for(self, entity: Entity) -> TimeSeriesIndex:
        return self._indexes[entity.id]

    def state_name(self, state: StateId) -> str:
        definition = self.states.get(state)
        return definition.name if definition else str(state)

    def tag_definition(self, def_id) -> Optional[TagDefinition]:
        if isinstance(def_id, int) and 0 <= def_id < len(self.tag_definitions):
            return self.tag_definitions[def_id]
        return None

    def entity_label(self, entity: Entity) -> str:
        label = f"{self.entity_kind} {entity.name}"
        if entity.description:
            label += f" ({entity.description})"
        return label

    @classmethod
    def load(cls, path: str, strict: bool = False) -> 'StatemapDataset':
        """
        Load a dataset from a JSON file.

        Args:
            path: Path to the dataset file
            strict: Raise on invariant violations instead of repairing them

        Returns:
            StatemapDataset: The loaded dataset

        Raises:
            DatasetError: If the file cannot be read or is malformed
        """
        if not os.path.exists(path):
            raise DatasetError("Dataset file not found", source=path)

        try:
            with open(path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DatasetError(f"Failed to read dataset: {e}", source=path) from e

        return cls.from_dict(payload, strict=strict, source=path)

    @classmethod
    def from_dict(cls, payload: Mapping, strict: bool = False,
                  source: Optional[str] = None) -> 'StatemapDataset':
        """
        Build a dataset from its decoded JSON form.

        Args:
            payload: Mapping with "globals" and "data" members
            strict: Raise on invariant violations instead of repairing them
            source: Description of where the payload came from, for errors

        Returns:
            StatemapDataset: The dataset

        Raises:
            DatasetError: If the payload is malformed
        """
        if not isinstance(payload, Mapping):
            raise DatasetError("Dataset must be a JSON object", source=source)

        globals_ = payload.get('globals', {})
        data = payload.get('data', {})

        if not isinstance(globals_, Mapping):
            raise DatasetError("'globals' must be an object", source=source)

        if not isinstance(data, Mapping):
            raise DatasetError("'data' must map entity names to samples", source=source)

        if 'timeWidth' not in globals_:
            raise DatasetError("Missing 'timeWidth' in globals", source=source)

        states = cls._parse_states(globals_.get('states', []), source)
        tag_definitions = cls._parse_tags(globals_.get('tags', []), source)
        descriptions = globals_.get('entities', {}) or {}

        entity_prefix = globals_.get('entityPrefix', DEFAULT_ENTITY_PREFIX)
        statemap_id = globals_.get('statemapId', DEFAULT_STATEMAP_ID)

        entities = []
        for position, (name, raw_samples) in enumerate(data.items()):
            samples = cls._parse_samples(name, raw_samples, len(tag_definitions),
                                         strict, source)
            description = None
            if isinstance(descriptions.get(name), Mapping):
                description = descriptions[name].get('description')

            entities.append(Entity(
                id=entity_prefix + name,
                name=name,
                position=position,
                statemap_id=statemap_id,
                samples=samples,
                description=description,
            ))

        try:
            dataset = cls(
                time_width=globals_['timeWidth'],
                begin=globals_.get('begin', 0),
                entities=entities,
                states=states,
                tag_definitions=tag_definitions,
                pixel_width=globals_.get('pixelWidth', DEFAULT_PIXEL_WIDTH),
                pixel_height=globals_.get('pixelHeight'),
                start=globals_.get('start'),
                entity_prefix=entity_prefix,
                entity_kind=globals_.get('entityKind', 'Entity'),
                statemap_id=statemap_id,
                notags=globals_.get('notags'),
            )
        except TypeError as e:
            raise DatasetError(f"Invalid global parameter: {e}", source=source) from e

        nsamples = sum(len(entity.samples) for entity in entities)
        logger.info(f"Loaded statemap dataset: {len(entities)} entities, "
                    f"{nsamples} samples, {len(tag_definitions)} tag definitions")
        return dataset

    @staticmethod
    def _parse_states(raw, source: Optional[str]) -> List[StateDefinition]:
        states = []

        if isinstance(raw, Mapping):
            for name, entry in raw.items():
                if not isinstance(entry, Mapping) or 'value' not in entry:
                    raise DatasetError(f"State '{name}' has no value", source=source)
                states.append(StateDefinition(
                    value=coerce_id(entry['value']), name=name, color=entry.get('color')))
        elif isinstance(raw, list):
            for entry in raw:
                if not isinstance(entry, Mapping) or 'value' not in entry:
                    raise DatasetError(f"Invalid state definition {entry!r}", source=source)
                value = coerce_id(entry['value'])
                states.append(StateDefinition(
                    value=value, name=entry.get('name', str(value)), color=entry.get('color')))
        else:
            raise DatasetError("'states' must be a list or an object", source=source)

        # Catalogue order follows state values where they are comparable
        try:
            states.sort(key=lambda s: s.value)
        except TypeError:
            pass

        return states

    @staticmethod
    def _parse_tags(raw, source: Optional[str]) -> List[TagDefinition]:
        if not isinstance(raw, list):
            raise DatasetError("'tags' must be a list", source=source)

        definitions = []
        for def_id, record in enumerate(raw):
            if not isinstance(record, Mapping) or 'state' not in record:
                raise DatasetError(f"Tag definition {def_id} has no state", source=source)

            values = {key: value for key, value in record.items()
                      if key not in RESERVED_TAG_FIELDS}
            definitions.append(TagDefinition(
                def_id=def_id,
                state_id=coerce_id(record['state']),
                tag=record.get('tag'),
                values=values,
            ))

        return definitions

    @staticmethod
    def _parse_samples(name: str, raw_samples, ntags: int, strict: bool,
                       source: Optional[str]) -> Tuple[Sample, ...]:
        if not isinstance(raw_samples, list):
            raise DatasetError("Samples must be a list", entity=name, source=source)

        samples = []
        for index, raw in enumerate(raw_samples):
            if not isinstance(raw, Mapping) or 't' not in raw or 's' not in raw:
                raise DatasetError("Sample needs 't' and 's'", name, index, source)

            time = _parse_time(raw['t'], name, index, source)

            state_value = raw['s']
            if isinstance(state_value, Mapping):
                state = BlendedStates(tuple(
                    (coerce_id(key), float(weight))
                    for key, weight in state_value.items()
                ))
            else:
                state = SingleState(coerce_id(state_value))

            tag_weights = None
            if raw.get('g'):
                if not isinstance(raw['g'], Mapping):
                    raise DatasetError("Tag weights must be an object", name, index, source)
                weights = []
                for key, weight in raw['g'].items():
                    def_id = coerce_id(key)
                    if not isinstance(def_id, int) or not 0 <= def_id < ntags:
                        raise DatasetError(f"Unknown tag definition {key!r}",
                                           name, index, source)
                    weights.append((def_id, float(weight)))
                tag_weights = tuple(weights)

            samples.append(Sample(time=time, state=state, tag_weights=tag_weights))

        for index in range(1, len(samples)):
            if samples[index].time < samples[index - 1].time:
                if strict:
                    raise DatasetError("Samples are not sorted by time", name, index, source)

                logger.warning(f"Samples for entity '{name}' are not sorted by time "
                               f"(first at index {index}); sorting")
                samples.sort(key=lambda sample: sample.time)
                break

        return tuple(samples)
