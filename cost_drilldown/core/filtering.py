"""
Faceted filter evaluation.

Each dimension is tested on its own (an unconstrained dimension admits
everything) and a record survives only when every dimension admits it.
Rollups of the result are rebuilt from the surviving records.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from .errors import DataQualityWarning
from .selection import SelectionSets
from .store import AggregateNode, DailyAggregate, build_daily_aggregate, validate_record
from cost_drilldown.storage.models import DIMENSIONS, CostRecord, FacetKey

logger = logging.getLogger(__name__)


@dataclass
class FilteredDailyAggregate:
    """Result of one filter pass. Discarded on the next selection change."""
    aggregate: DailyAggregate
    warnings: List[DataQualityWarning] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return self.aggregate.record_count


def record_passes(record: CostRecord, selections: SelectionSets) -> bool:
    """Conjunction of the five per-dimension tests for one record.

    Raises:
        ValueError: If the record's ancestor context cannot be resolved
    """
    for dimension in DIMENSIONS:
        if selections.is_unconstrained(dimension):
            continue
        key = FacetKey.for_record(dimension, record)
        if not selections.admits(dimension, key.value, key.context):
            return False
    return True


def filter_daily_aggregate(aggregate: DailyAggregate, selections: SelectionSets) -> FilteredDailyAggregate:
    """Filter an aggregate by the current selections in one pass per day.

    A subtree is pruned as soon as its dimension's test fails, since every
    record beneath a node shares that node's value and context. A record
    that cannot be evaluated is left out and reported as a warning.
    """
    if selections.is_empty:
        return FilteredDailyAggregate(aggregate=aggregate)

    survivors: List[CostRecord] = []
    warnings: List[DataQualityWarning] = []
    for day, root in aggregate.items():
        stack: List[Tuple[AggregateNode, int]] = [(child, 0) for child in root.children.values()]
        while stack:
            node, level = stack.pop()
            dimension = DIMENSIONS[level]
            if not selections.admits(dimension, node.key.value, node.key.context):
                continue
            if node.records:
                for record in node.records:
                    try:
                        validate_record(record)
                        if record_passes(record, selections):
                            survivors.append(record)
                    except ValueError as e:
                        warnings.append(DataQualityWarning("filter_error", str(e), day))
            stack.extend((child, level + 1) for child in node.children.values())

    for warning in warnings:
        logger.warning(f"Excluded record from filter result: {warning.message}")
    survivors.sort(key=lambda record: record.date)
    return FilteredDailyAggregate(aggregate=build_daily_aggregate(survivors), warnings=warnings)
