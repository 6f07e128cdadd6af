"""
Tests for the application logging setup.
"""

import logging

import pytest

from logging_config import LOG_LEVEL_ENV, LOGGER_NAME, get_logger, level_from_env, setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_repeated_calls_keep_one_handler(self):
        setup_logging(logging.INFO)
        logger = setup_logging(logging.INFO)

        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")
        assert setup_logging().level == logging.DEBUG

    def test_unknown_level_name_falls_back(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")
        assert level_from_env(logging.WARNING) == logging.WARNING

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(logging.INFO, log_file=log_file)

        get_logger("pca_utils.pca_calculations").info("PCA finished")
        for handler in logging.getLogger(LOGGER_NAME).handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "PCA finished" in content
        assert "penguin_analytics.pca_utils.pca_calculations" in content


class TestGetLogger:
    """Tests for get_logger."""

    @pytest.mark.parametrize("name, expected", [
        (None, LOGGER_NAME),
        (LOGGER_NAME, LOGGER_NAME),
        ("mreg_utils.mreg", f"{LOGGER_NAME}.mreg_utils.mreg"),
        (f"{LOGGER_NAME}.pages", f"{LOGGER_NAME}.pages"),
    ])
    def test_names(self, name, expected):
        assert get_logger(name).name == expected
