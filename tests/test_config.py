"""
Unit tests for report configuration loading and validation.

Tests strict validation and error handling for report configs.
"""

import os
import tempfile

import pytest
import yaml

from cost_drilldown.config.loader import (
    DEFAULT_REPORT_CONFIG,
    ReportConfig,
    ReportCurrency,
    load_report_config,
)
from cost_drilldown.storage.models import Dimension


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data: dict, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_data = {
            "report": {
                "currency": "local",
                "top_n": 10,
                "stack_dimension": "category",
                "other_label": "Everything else"
            }
        }

        config = load_report_config(self._write_config(config_data))

        assert config.currency == ReportCurrency.LOCAL
        assert config.top_n == 10
        assert config.stack_dimension == Dimension.CATEGORY
        assert config.other_label == "Everything else"

    def test_missing_keys_use_defaults(self):
        """Test that omitted report keys fall back to defaults."""
        config = load_report_config(self._write_config({"report": {"top_n": 5}}))

        assert config.top_n == 5
        assert config.currency == DEFAULT_REPORT_CONFIG.currency
        assert config.stack_dimension == Dimension.METER
        assert config.other_label == "Other"

    def test_currency_is_case_insensitive(self):
        config = load_report_config(self._write_config({"report": {"currency": "USD"}}))
        assert config.currency == ReportCurrency.USD

    def test_missing_file_raises_error(self):
        """Test that missing config file raises error."""
        with pytest.raises(FileNotFoundError, match="Report config file not found"):
            load_report_config("nonexistent.yaml")

    def test_empty_config_raises_error(self):
        """Test that empty config file raises error."""
        config_path = self._write_config({})

        with pytest.raises(ValueError, match="Configuration file is empty"):
            load_report_config(config_path)

    def test_invalid_yaml_raises_error(self):
        """Test that invalid YAML raises error."""
        config_path = os.path.join(self.temp_dir, "invalid.yaml")
        with open(config_path, 'w') as f:
            f.write("invalid: yaml: content: [")

        with pytest.raises(yaml.YAMLError):
            load_report_config(config_path)

    def test_null_report_section_raises_error(self):
        config_path = os.path.join(self.temp_dir, "list.yaml")
        with open(config_path, 'w') as f:
            f.write("report:\n")

        with pytest.raises(ValueError, match="'report' must be a dictionary"):
            load_report_config(config_path)

    def test_unknown_top_level_keys_raise_error(self):
        """Test that unknown top-level keys raise error."""
        config_path = self._write_config({"report": {}, "budget": {"daily": 1}})

        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_report_config(config_path)

    def test_unknown_report_keys_raise_error(self):
        """Test that unknown report keys raise error."""
        config_path = self._write_config({"report": {"top_n": 5, "top": 5}})

        with pytest.raises(ValueError, match="Unknown keys in report"):
            load_report_config(config_path)

    def test_invalid_currency_raises_error(self):
        config_path = self._write_config({"report": {"currency": "sek"}})

        with pytest.raises(ValueError, match="must be one of"):
            load_report_config(config_path)

    def test_zero_top_n_raises_error(self):
        config_path = self._write_config({"report": {"top_n": 0}})

        with pytest.raises(ValueError, match="'top_n' in report must be an integer > 0"):
            load_report_config(config_path)

    def test_non_integer_top_n_raises_error(self):
        config_path = self._write_config({"report": {"top_n": 2.5}})

        with pytest.raises(ValueError, match="must be an integer"):
            load_report_config(config_path)

    def test_unknown_stack_dimension_raises_error(self):
        config_path = self._write_config({"report": {"stack_dimension": "region"}})

        with pytest.raises(ValueError, match="Unknown dimension 'region'"):
            load_report_config(config_path)

    def test_blank_other_label_raises_error(self):
        config_path = self._write_config({"report": {"other_label": "  "}})

        with pytest.raises(ValueError, match="other_label cannot be empty"):
            load_report_config(config_path)


class TestReportConfig:
    """Test the report config dataclass."""

    def test_defaults(self):
        config = ReportConfig()
        assert config.top_n == 15
        assert config.currency == ReportCurrency.USD

    def test_negative_top_n_raises_error(self):
        with pytest.raises(ValueError, match="top_n must be > 0"):
            ReportConfig(top_n=-1)
