"""
Tests for component logger handles.
"""

import logging

import pytest

from seedline.core.logger import (
    ROOT_LOGGER,
    NullLogger,
    get_logger,
    qualified_name,
    set_logger,
)


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def info(self, message, *args, **kwargs):
        self.messages.append(("info", message))

    def warning(self, message, *args, **kwargs):
        self.messages.append(("warning", message))


@pytest.fixture(autouse=True)
def standard_logging():
    set_logger(None)
    yield
    set_logger(None)


class TestQualifiedName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            (None, "seedline"),
            ("seedline", "seedline"),
            ("seedline.core.runner", "seedline.core.runner"),
            ("nightly_seed", "seedline.nightly_seed"),
            ("seedlinex", "seedline.seedlinex"),
        ],
    )
    def test_names_stay_in_namespace(self, name, expected):
        assert qualified_name(name) == expected


class TestGetLogger:
    def test_records_reach_the_namespace(self, caplog):
        logger = get_logger("nightly_seed")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER):
            logger.info("seeded")

        assert [(r.name, r.getMessage()) for r in caplog.records] == [
            ("seedline.nightly_seed", "seeded")
        ]

    def test_root_logger_has_null_handler(self):
        handlers = logging.getLogger(ROOT_LOGGER).handlers

        assert any(isinstance(h, logging.NullHandler) for h in handlers)

    def test_custom_logger_reaches_existing_handles(self):
        logger = get_logger("seedline.core.runner")
        custom = RecordingLogger()

        set_logger(custom)
        logger.warning("retrying")

        assert custom.messages == [("warning", "retrying")]
        assert logger.target is custom

    def test_reset_to_standard_logging(self):
        logger = get_logger("seedline.core.runner")
        set_logger(RecordingLogger())

        set_logger(None)

        assert logger.target is logging.getLogger("seedline.core.runner")

    def test_null_logger_drops_everything(self, caplog):
        logger = get_logger("seedline.core.cleanup")
        set_logger(NullLogger())

        with caplog.at_level(logging.DEBUG):
            logger.error("lost")
            logger.exception("lost")

        assert caplog.records == []
