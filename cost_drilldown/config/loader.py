"""
Configuration management and loading.

Handles the report settings that drive the cost trend chart.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict

import yaml

from cost_drilldown.storage.models import Dimension


class ReportCurrency(Enum):
    """Currency the chart and ranking are expressed in."""
    USD = "usd"
    LOCAL = "local"


@dataclass(frozen=True)
class ReportConfig:
    """Settings for one cost trend report."""
    currency: ReportCurrency = ReportCurrency.USD
    top_n: int = 15
    stack_dimension: Dimension = Dimension.METER
    other_label: str = "Other"

    def __post_init__(self):
        """Validate report settings."""
        if self.top_n <= 0:
            raise ValueError("top_n must be > 0")
        if not self.other_label or not self.other_label.strip():
            raise ValueError("other_label cannot be empty")


DEFAULT_REPORT_CONFIG = ReportConfig()


def load_report_config(path: str) -> ReportConfig:
    """Load and validate report configuration from a YAML file.

    Unknown keys are rejected so a typo never silently falls back to a
    default.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ReportConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Report config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - {'report'}
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    report_data = raw_config['report']
    if not isinstance(report_data, dict):
        raise ValueError("'report' must be a dictionary")

    return _parse_report_config(report_data)


def _parse_report_config(data: Dict) -> ReportConfig:
    """Parse and validate the report section.

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'currency', 'top_n', 'stack_dimension', 'other_label'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in report: {unknown_keys}")

    currency = DEFAULT_REPORT_CONFIG.currency
    if 'currency' in data:
        currency_str = data['currency']
        if not isinstance(currency_str, str):
            raise ValueError("'currency' in report must be a string")
        try:
            currency = ReportCurrency(currency_str.lower())
        except ValueError:
            valid = [c.value for c in ReportCurrency]
            raise ValueError(f"'currency' in report must be one of: {valid}")

    top_n = data.get('top_n', DEFAULT_REPORT_CONFIG.top_n)
    if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n <= 0:
        raise ValueError("'top_n' in report must be an integer > 0")

    stack_dimension = DEFAULT_REPORT_CONFIG.stack_dimension
    if 'stack_dimension' in data:
        if not isinstance(data['stack_dimension'], str):
            raise ValueError("'stack_dimension' in report must be a string")
        stack_dimension = Dimension.parse(data['stack_dimension'])

    other_label = data.get('other_label', DEFAULT_REPORT_CONFIG.other_label)
    if not isinstance(other_label, str):
        raise ValueError("'other_label' in report must be a string")

    return ReportConfig(
        currency=currency,
        top_n=top_n,
        stack_dimension=stack_dimension,
        other_label=other_label,
    )
