"""
Exceptions and data-quality warnings raised by the drill-down engine.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


class DrillDownError(Exception):
    """Base class for drill-down engine errors."""


class MalformedRecordError(DrillDownError, ValueError):
    """Raised when a cost record cannot be placed in the hierarchy."""
    def __init__(self, message: str, missing: Optional[str] = None):
        super().__init__(message)
        self.missing = missing


class CascadeResolutionError(DrillDownError):
    """Raised when a toggled facet key is not in the hierarchy index."""


@dataclass(frozen=True)
class DataQualityWarning:
    """A problem with the input data that was degraded rather than raised."""
    kind: str  # "malformed_record", "filter_error" or "mixed_currencies"
    message: str
    record_date: Optional[date] = None
