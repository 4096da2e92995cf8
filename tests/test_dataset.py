"""
Dataset Loader Tests

Parsing the JSON form of a statemap dataset and validating it.
"""

import json

import pytest

from statemap.data.dataset import StatemapDataset, coerce_id
from statemap.data.models import BlendedStates, SingleState
from statemap.utils.error_handler import DatasetError


class TestCoerceId:

    @pytest.mark.parametrize("key,expected", [
        ("0", 0), ("17", 17), ("-3", -3), ("idle", "idle"), (5, 5), ("1.5", "1.5"),
    ])
    def test_coerce(self, key, expected):
        assert coerce_id(key) == expected


class TestLoad:

    def test_load_from_file(self, tagged_file):
        dataset = StatemapDataset.load(str(tagged_file))

        assert len(dataset) == 2
        assert dataset.time_width == 1000
        assert dataset.end_time == 1000
        assert dataset.pixel_width == 100
        assert dataset.entity_kind == "Thread"
        assert not dataset.notags

    def test_entities_in_data_order(self, tagged_dataset):
        assert [e.name for e in tagged_dataset.entities] == ["1", "2"]
        assert [e.position for e in tagged_dataset.entities] == [0, 1]

    def test_entity_lookup_by_id_and_name(self, tagged_dataset):
        entity = tagged_dataset.entity("1")

        assert tagged_dataset.entity("statemap-entity-1") is entity
        assert tagged_dataset.entity("missing") is None

    def test_entity_label(self, tagged_dataset):
        assert tagged_dataset.entity_label(tagged_dataset.entity("1")) == "Thread 1 (worker)"
        assert tagged_dataset.entity_label(tagged_dataset.entity("2")) == "Thread 2"

    def test_samples_are_typed(self, tagged_dataset):
        samples = tagged_dataset.entity("2").samples

        assert samples[0].state == SingleState(1)
        assert samples[0].tag_weights == ((1, 1.0),)
        assert isinstance(samples[1].state, BlendedStates)
        assert samples[1].state.weights() == {0: 0.25, 1: 0.75}
        assert samples[2].tag_weights is None

    def test_states_and_tags(self, tagged_dataset):
        assert tagged_dataset.state_name(1) == "off-cpu-waiting"
        assert tagged_dataset.state_name(9) == "9"
        assert tagged_dataset.tag_definition(2).values == {"reason": "io", "syscall": "write"}
        assert tagged_dataset.tag_definition(9) is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(DatasetError):
            StatemapDataset.load(str(tmp_path / "nope.json"))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DatasetError):
            StatemapDataset.load(str(path))


class TestValidation:

    def test_missing_time_width(self, tagged_payload):
        del tagged_payload["globals"]["timeWidth"]

        with pytest.raises(DatasetError):
            StatemapDataset.from_dict(tagged_payload)

    def test_non_positive_time_width(self, tagged_payload):
        tagged_payload["globals"]["timeWidth"] = 0

        with pytest.raises(DatasetError):
            StatemapDataset.from_dict(tagged_payload)

    def test_unknown_tag_reference(self, tagged_payload):
        tagged_payload["data"]["1"][1]["g"] = {"12": 1.0}

        with pytest.raises(DatasetError) as excinfo:
            StatemapDataset.from_dict(tagged_payload)

        assert excinfo.value.entity == "1"
        assert excinfo.value.index == 1

    def test_invalid_sample_time(self, tagged_payload):
        tagged_payload["data"]["2"][0]["t"] = "soon"

        with pytest.raises(DatasetError):
            StatemapDataset.from_dict(tagged_payload)

    def test_string_sample_time(self, tagged_payload):
        tagged_payload["data"]["2"][1]["t"] = "400"

        dataset = StatemapDataset.from_dict(tagged_payload)

        assert dataset.entity("2").samples[1].time == 400

    def test_unsorted_samples_are_sorted(self, tagged_payload, caplog):
        samples = tagged_payload["data"]["1"]
        samples[1], samples[2] = samples[2], samples[1]

        dataset = StatemapDataset.from_dict(tagged_payload)

        assert [s.time for s in dataset.entity("1").samples] == [0, 200, 500, 800]
        assert "not sorted" in caplog.text

    def test_unsorted_samples_strict(self, tagged_payload):
        samples = tagged_payload["data"]["1"]
        samples[1], samples[2] = samples[2], samples[1]

        with pytest.raises(DatasetError):
            StatemapDataset.from_dict(tagged_payload, strict=True)

    def test_no_tags(self, tagged_payload):
        del tagged_payload["globals"]["tags"]
        for samples in tagged_payload["data"].values():
            for sample in samples:
                sample.pop("g", None)

        dataset = StatemapDataset.from_dict(tagged_payload)

        assert dataset.notags

    def test_default_pixel_height(self, tagged_payload):
        del tagged_payload["globals"]["pixelHeight"]

        assert StatemapDataset.from_dict(tagged_payload).pixel_height == 20

    def test_states_as_list(self, tagged_payload):
        tagged_payload["globals"]["states"] = [
            {"name": "off", "value": 1}, {"name": "on", "value": 0},
        ]

        dataset = StatemapDataset.from_dict(tagged_payload)

        assert [s.name for s in dataset.states.values()] == ["on", "off"]

    def test_round_trip_through_json(self, tagged_payload):
        dataset = StatemapDataset.from_dict(json.loads(json.dumps(tagged_payload)))

        assert dataset.entity("1").samples[3].tag_weights == ((3, 1.0),)
