"""
Viewer Configuration Tests
"""

import json

import pytest

from statemap.config import ViewerConfig
from statemap.utils.error_handler import ConfigError


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config" / "viewer.json"


class TestViewerConfig:

    def test_defaults(self):
        config = ViewerConfig()

        assert config.tag_display_budget == 40
        assert config.strip_height == 10
        assert config.center_marker_on_zoom is True
        assert config.strict_validation is False
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_load_section(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps({"statemap": {"tag_display_budget": 5,
                                                 "log_level": "debug"}}))

        config = ViewerConfig(str(path))

        assert config.tag_display_budget == 5
        assert config.log_level == "DEBUG"

    def test_unknown_and_invalid_keys_keep_defaults(self, tmp_path, caplog):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps({"statemap": {"colour": "red",
                                                 "strip_height": -1}}))

        config = ViewerConfig(str(path))

        assert config.strip_height == 10
        assert "colour" in caplog.text

    def test_malformed_file(self, tmp_path, caplog):
        path = tmp_path / "viewer.json"
        path.write_text("{broken")

        config = ViewerConfig(str(path))

        assert config.tag_display_budget == 40
        assert "Error loading configuration" in caplog.text

    def test_empty_file(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text("")

        assert ViewerConfig(str(path)).tag_display_budget == 40

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "viewer.json"
        path.write_text(json.dumps({"statemap": {"tag_display_budget": 5}}))

        config = ViewerConfig(str(path), tag_display_budget=7)

        assert config.tag_display_budget == 7

    def test_save_preserves_other_sections(self, config_path):
        config_path.parent.mkdir()
        config_path.write_text(json.dumps({"pagination": {"page_size": 100}}))

        config = ViewerConfig(str(config_path))
        config.set("center_marker_on_zoom", False)
        config.save()

        data = json.loads(config_path.read_text())
        assert data["pagination"] == {"page_size": 100}
        assert data["statemap"]["center_marker_on_zoom"] is False

    def test_save_creates_directories(self, config_path):
        config = ViewerConfig(str(config_path), strip_height=12)
        config.save()

        assert ViewerConfig(str(config_path)).strip_height == 12

    @pytest.mark.parametrize("key,value", [
        ("tag_display_budget", 0),
        ("tag_display_budget", True),
        ("strip_height", "10"),
        ("center_marker_on_zoom", 1),
        ("log_level", "LOUD"),
        ("log_file", 3),
        ("nonsense", 1),
    ])
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigError):
            ViewerConfig().set(key, value)
