"""
Shared fixtures for the statemap explorer tests.

Two datasets are used throughout:
- ``cpu0``: one entity with string state ids, built directly from the model
- ``tagged``: two threads with blended samples and tag weights, built from
  the JSON form a statemap producer emits
"""

import copy
import json

import pytest

from statemap.data.dataset import StatemapDataset
from statemap.data.models import Entity, Sample, SingleState, StateDefinition
from statemap.rendering.renderer import RecordingRenderer


# =============================================================================
# DATASET PAYLOADS
# =============================================================================

TAGGED_PAYLOAD = {
    "globals": {
        "timeWidth": 1000,
        "begin": 0,
        "pixelWidth": 100,
        "pixelHeight": 20,
        "entityKind": "Thread",
        "entities": {
            "1": {"description": "worker"},
        },
        "states": {
            "on-cpu": {"value": 0, "color": "#2ecc71"},
            "off-cpu-waiting": {"value": 1, "color": "#f39c12"},
        },
        "tags": [
            {"state": 1, "tag": "a", "reason": "io", "syscall": "read"},
            {"state": 1, "tag": "b", "reason": "lock", "syscall": "futex"},
            {"state": 1, "tag": "c", "reason": "io", "syscall": "write"},
            {"state": 0, "tag": "d", "cpu": "0"},
        ],
    },
    "data": {
        "1": [
            {"t": 0, "s": 0},
            {"t": 200, "s": 1, "g": {"0": 1.0}},
            {"t": 500, "s": 1, "g": {"1": 0.5, "2": 0.5}},
            {"t": 800, "s": 0, "g": {"3": 1.0}},
        ],
        "2": [
            {"t": 0, "s": 1, "g": {"1": 1.0}},
            {"t": 400, "s": {"0": 0.25, "1": 0.75}, "g": {"0": 1.0}},
            {"t": 600, "s": 0},
        ],
    },
}


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def cpu0_dataset():
    """cpu0: idle from 0, run from 100, idle again at 300 (the dataset end)."""
    samples = (
        Sample(time=0, state=SingleState("idle")),
        Sample(time=100, state=SingleState("run")),
        Sample(time=300, state=SingleState("idle")),
    )
    entity = Entity(id="statemap-entity-cpu0", name="cpu0", position=0,
                    statemap_id="statemap", samples=samples)
    return StatemapDataset(
        time_width=300,
        begin=0,
        entities=[entity],
        states=[StateDefinition("idle", "idle"), StateDefinition("run", "run")],
        pixel_width=300,
        entity_kind="CPU",
    )


@pytest.fixture
def cpu0(cpu0_dataset):
    return cpu0_dataset.entity("cpu0")


@pytest.fixture
def tagged_payload():
    return copy.deepcopy(TAGGED_PAYLOAD)


@pytest.fixture
def tagged_dataset(tagged_payload):
    return StatemapDataset.from_dict(tagged_payload)


@pytest.fixture
def tagged_file(tmp_path, tagged_payload):
    path = tmp_path / "statemap.json"
    path.write_text(json.dumps(tagged_payload), encoding="utf-8")
    return path


@pytest.fixture
def renderer():
    return RecordingRenderer()
