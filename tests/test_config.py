"""Tests for configuration loading and logging setup."""

import logging

import pytest

from bank_ledger_recon.config import (
    DEFAULT_STOP_WORDS,
    ReconConfig,
    generate_default_config,
    get_default_config,
    load_config,
)
from bank_ledger_recon.utils.exceptions import ConfigurationError
from bank_ledger_recon.utils.logging_config import LOGGER_NAME, level_from_name, setup_logging


class TestConfigLoading:
    """Tests for YAML configuration."""

    def test_defaults(self):
        config = load_config(None)

        assert config.matching.tolerance_days == 3
        assert float(config.matching.tolerance_value) == 0.01
        assert config.matching.fuzzy_threshold == 0.6
        assert config.matching.group_threshold == 0.65
        assert config.input.max_records == 5000
        assert config.session.currency == "BRL"
        assert config.config_file_path is None

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == ReconConfig()

    def test_partial_override_is_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "matching:\n  tolerance_days: 5\nsession:\n  company: ACME Ltda\n",
            encoding="utf-8",
        )
        config = load_config(path)

        assert config.matching.tolerance_days == 5
        assert config.matching.stop_words == DEFAULT_STOP_WORDS
        assert config.session.company == "ACME Ltda"
        assert config.config_file_path == str(path)

    @pytest.mark.parametrize(
        "content",
        [
            "matching: [unclosed\n",
            "- just\n- a list\n",
            "matching:\n  tolerance_days: -1\n",
            "matching:\n  fuzzy_threshold: 2\n",
        ],
    )
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_generated_file_loads_back(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        generate_default_config(path)
        config = load_config(path)

        assert path.read_text(encoding="utf-8").startswith("# Bank statement")
        assert config.matching.tolerance_days == 3
        assert float(config.matching.tolerance_value) == 0.01
        assert config.output.sheets.summary == "Summary"

    def test_default_dict_is_plain_data(self):
        defaults = get_default_config()
        assert defaults["matching"]["tolerance_value"] == 0.01
        assert "config_file_path" not in defaults

    def test_output_section_keys(self):
        output = get_default_config()["output"]
        assert set(output) == {"excel_filename_template", "sheets"}


class TestLoggingSetup:
    """Tests for logging configuration."""

    def test_console_and_file_handlers(self, tmp_path):
        logger = setup_logging(logging.DEBUG, tmp_path / "logs" / "recon.log")
        try:
            assert logger.name == LOGGER_NAME
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2

            logging.getLogger(f"{LOGGER_NAME}.matching").info("hello")
            for handler in logger.handlers:
                handler.flush()
            assert "hello" in (tmp_path / "logs" / "recon.log").read_text(encoding="utf-8")
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers = []

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1
        logger.handlers = []

    def test_level_names(self):
        assert level_from_name("debug") == logging.DEBUG
        assert level_from_name("WARNING") == logging.WARNING
        assert level_from_name("bogus") == logging.INFO
