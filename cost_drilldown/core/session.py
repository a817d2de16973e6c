"""
Drill-down session: the action handler behind the interactive cost chart.

Each user action runs to completion before the next one: the cascade
resolver mutates the selection once, the state notifies once, and that
single notification drives one filter pass and one ranking.

Recomputation never raises. A failed filter pass falls back to the
unfiltered data so the chart is never left blank.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .cascade import CascadeResolver
from .errors import DataQualityWarning
from .filtering import FilteredDailyAggregate, filter_daily_aggregate
from .ranking import RankedSeries, rank_series
from .selection import SelectionSets, SelectionState
from .store import CostRecordStore
from cost_drilldown.config.loader import DEFAULT_REPORT_CONFIG, ReportConfig
from cost_drilldown.storage.models import Dimension, FacetKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterSummary:
    """Counts that drive the "clear filters" control and the result count."""
    has_active_filters: bool
    active_facet_count: int
    result_count: int
    total_cost: float
    warnings: Tuple[DataQualityWarning, ...] = ()


@dataclass(frozen=True)
class DrillDownView:
    """Everything the renderer needs after one action."""
    series: RankedSeries
    summary: FilterSummary


class DrillDownSession:
    """Holds the selection for one viewing of a cost dataset."""

    def __init__(self, store: CostRecordStore, config: ReportConfig = DEFAULT_REPORT_CONFIG):
        self.store = store
        self.config = config
        self.recompute_count = 0
        self._state = SelectionState()
        self._resolver = CascadeResolver(self._state, store.index)
        self._stack_dimension = config.stack_dimension
        self._filtered: Optional[FilteredDailyAggregate] = None
        self._view: Optional[DrillDownView] = None
        self._state.subscribe(self._on_selection_changed)
        self._recompute(self._state.selections)

    @property
    def selections(self) -> SelectionSets:
        return self._state.selections

    @property
    def stack_dimension(self) -> Dimension:
        return self._stack_dimension

    @property
    def filtered(self) -> FilteredDailyAggregate:
        return self._filtered

    @property
    def view(self) -> DrillDownView:
        return self._view

    def is_explicit(self, key: FacetKey) -> bool:
        return self._state.is_explicit(key)

    def toggle(self, dimension: Dimension, value: str, ancestors: Sequence[str] = ()) -> DrillDownView:
        """Toggle one facet value at the position in the hierarchy it was clicked."""
        try:
            key = FacetKey(dimension, value, tuple(ancestors))
        except ValueError as e:
            logger.warning(f"Ignoring toggle of {dimension.value} '{value}': {e}")
            return self._view
        return self.toggle_key(key)

    def toggle_key(self, key: FacetKey) -> DrillDownView:
        self._resolver.toggle(key)
        return self._view

    def clear(self) -> DrillDownView:
        self._resolver.clear()
        return self._view

    def set_stack_dimension(self, dimension: Dimension) -> DrillDownView:
        """Change the stacking dimension; only the ranking is recomputed."""
        if dimension != self._stack_dimension:
            self._stack_dimension = dimension
            self._rank()
        return self._view

    def _on_selection_changed(self, selections: SelectionSets) -> None:
        self._recompute(selections)

    def _recompute(self, selections: SelectionSets) -> None:
        self.recompute_count += 1
        try:
            self._filtered = filter_daily_aggregate(self.store.aggregate, selections)
        except Exception as e:
            logger.exception("Filter pass failed, showing unfiltered data")
            self._filtered = FilteredDailyAggregate(
                aggregate=self.store.aggregate,
                warnings=[DataQualityWarning("filter_error", f"filter pass failed: {e}")],
            )
        self._rank()

    def _rank(self) -> None:
        filtered = self._filtered
        series = rank_series(
            filtered.aggregate,
            self._stack_dimension,
            top_n=self.config.top_n,
            currency=self.config.currency.value,
            dates=self.store.aggregate.dates,
            other_label=self.config.other_label,
        )
        selections = self._state.selections
        self._view = DrillDownView(
            series=series,
            summary=FilterSummary(
                has_active_filters=not selections.is_empty,
                active_facet_count=selections.count(),
                result_count=filtered.record_count,
                total_cost=filtered.aggregate.total_cost(series.currency),
                warnings=tuple(self.store.warnings) + tuple(filtered.warnings) + tuple(series.warnings),
            ),
        )
