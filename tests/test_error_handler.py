"""
Error Handling and Logging Tests
"""

import logging

import pytest

from statemap.utils.error_handler import (
    DatasetError, ErrorSeverity, RenderError, StatemapError, guard_gesture,
    setup_logging,
)


class TestErrors:

    def test_dataset_error_details(self):
        error = DatasetError("Bad sample", entity="cpu0", index=4, source="x.json")

        assert error.message == "Bad sample"
        assert "Entity: cpu0" in error.details
        assert "Sample index: 4" in error.details
        assert "Source: x.json" in error.details
        assert error.severity == ErrorSeverity.ERROR

    def test_render_error_is_a_warning(self):
        assert RenderError("gone").severity == ErrorSeverity.WARNING


class TestGuardGesture:

    def test_statemap_error_is_swallowed(self, caplog):
        @guard_gesture(return_value="fallback")
        def gesture():
            raise StatemapError("collaborator failed")

        assert gesture() == "fallback"
        assert "Error in gesture: collaborator failed" in caplog.text

    def test_other_errors_propagate(self):
        @guard_gesture()
        def gesture():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            gesture()


class TestSetupLogging:

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "statemap.log"

        logger = setup_logging(logging.DEBUG, str(log_file), logger_name="statemap.test")
        logger.debug("hello")
        for handler in logger.handlers:
            handler.close()

        assert " - statemap.test - DEBUG - hello" in log_file.read_text()
        logger.handlers = []

    def test_replaces_handlers(self):
        setup_logging(logger_name="statemap.test")
        logger = setup_logging(logger_name="statemap.test")

        assert len(logger.handlers) == 1
        logger.handlers = []
