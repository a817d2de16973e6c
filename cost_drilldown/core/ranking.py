"""
Top-N ranking of the stacked cost series.

Sums cost per value of the stacking dimension over the filtered days,
keeps the N most expensive values and folds the rest into one "Other"
series.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import DataQualityWarning
from .store import DailyAggregate
from cost_drilldown.storage.models import Dimension

logger = logging.getLogger(__name__)

DEFAULT_OTHER_LABEL = "Other"


@dataclass(frozen=True)
class SeriesEntry:
    """One stacked series: a facet value (or the remainder) over time."""
    label: str
    total: float
    values: List[float]
    is_other: bool = False


@dataclass
class RankedSeries:
    """Chart-ready series for one stacking dimension."""
    stack_dimension: Dimension
    currency: str
    dates: List[date]
    entries: List[SeriesEntry]
    warnings: List[DataQualityWarning] = field(default_factory=list)

    @property
    def labels(self) -> List[str]:
        return [entry.label for entry in self.entries]

    @property
    def total(self) -> float:
        return math.fsum(entry.total for entry in self.entries)

    def to_chart_payload(self) -> Dict[str, Any]:
        """Stacked chart data keyed the way the report's chart script reads it."""
        return {
            "stackDimension": self.stack_dimension.value,
            "currency": self.currency,
            "labels": [day.isoformat() for day in self.dates],
            "datasets": [
                {
                    "label": entry.label,
                    "total": round(entry.total, 2),
                    "data": [round(value, 2) for value in entry.values],
                    "isOther": entry.is_other,
                }
                for entry in self.entries
            ],
        }


def _resolve_currency(aggregate: DailyAggregate, currency: str) -> Tuple[str, List[DataQualityWarning]]:
    if currency != "local":
        return "usd", []
    codes = aggregate.currencies()
    if len(codes) <= 1:
        return "local", []
    message = f"Mixed currencies {sorted(codes)} in local-currency ranking, using USD"
    logger.warning(message)
    return "usd", [DataQualityWarning("mixed_currencies", message)]


def rank_series(
    aggregate: DailyAggregate,
    stack_dimension: Dimension,
    top_n: int = 15,
    currency: str = "usd",
    dates: Optional[Sequence[date]] = None,
    other_label: str = DEFAULT_OTHER_LABEL,
) -> RankedSeries:
    """Rank the values of ``stack_dimension`` by total cost.

    Costs are taken in the report currency before summing. A local-currency
    ranking over records in more than one currency falls back to USD.

    Args:
        aggregate: Filtered daily aggregate to rank
        stack_dimension: Dimension whose values become the stacked series
        top_n: Number of values to keep before folding into "Other"
        currency: "usd" or "local"
        dates: Dates to index the series by; defaults to the aggregate's days
        other_label: Label of the remainder series

    Returns:
        RankedSeries sorted by total descending, ties by value ascending

    Raises:
        ValueError: If top_n is not positive
    """
    if top_n <= 0:
        raise ValueError("top_n must be > 0")

    effective_currency, warnings = _resolve_currency(aggregate, currency)
    series_dates = list(dates) if dates is not None else aggregate.dates
    position = {day: i for i, day in enumerate(series_dates)}

    # the same value can sit under several parents; collect the parts per
    # day and sum them exactly so the order of the tree does not matter
    parts: Dict[str, List[List[float]]] = {}
    for day, root in aggregate.items():
        if day not in position:
            continue
        nodes = list(root.children.values())
        for _ in range(stack_dimension.level):
            nodes = [child for node in nodes for child in node.children.values()]
        for node in nodes:
            cells = parts.setdefault(node.key.value, [[] for _ in series_dates])
            cells[position[day]].append(node.cost_in(effective_currency))

    per_value = {value: [math.fsum(cell) for cell in cells] for value, cells in parts.items()}
    totals = {value: math.fsum(values) for value, values in per_value.items()}
    ranked = sorted(
        (value for value, total in totals.items() if total != 0),
        key=lambda value: (-totals[value], value),
    )

    entries = [
        SeriesEntry(label=value, total=totals[value], values=per_value[value])
        for value in ranked[:top_n]
    ]
    remainder = ranked[top_n:]
    if remainder:
        other_values = [
            math.fsum(per_value[value][i] for value in remainder)
            for i in range(len(series_dates))
        ]
        label = other_label
        if any(entry.label == label for entry in entries):
            label = f"{other_label} ({len(remainder)} more)"
        entries.append(SeriesEntry(
            label=label,
            total=math.fsum(totals[value] for value in remainder),
            values=other_values,
            is_other=True,
        ))

    return RankedSeries(
        stack_dimension=stack_dimension,
        currency=effective_currency,
        dates=series_dates,
        entries=entries,
        warnings=warnings,
    )
