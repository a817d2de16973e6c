"""
Cost record store and daily aggregates.

Rolls the immutable cost records up into one hierarchy tree per day and
indexes the hierarchy so a facet's children can be found without scanning
the records again.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .errors import CascadeResolutionError, DataQualityWarning, MalformedRecordError
from cost_drilldown.storage.models import DIMENSIONS, CostRecord, FacetKey

logger = logging.getLogger(__name__)


@dataclass
class AggregateNode:
    """One node of a day's cost hierarchy.

    The day root has no key. Resource nodes hold the records that were
    rolled up into them; every other node holds its children by value.
    """
    key: Optional[FacetKey]
    cost_local: float = 0.0
    cost_usd: float = 0.0
    children: Dict[str, "AggregateNode"] = field(default_factory=dict)
    records: List[CostRecord] = field(default_factory=list)

    def cost_in(self, currency: str) -> float:
        return self.cost_local if currency == "local" else self.cost_usd

    def child_key(self, value: str) -> FacetKey:
        if self.key is None:
            return FacetKey(DIMENSIONS[0], value, ())
        return self.key.child(value)

    def iter_records(self) -> Iterator[CostRecord]:
        """All records beneath this node, depth first."""
        yield from self.records
        for child in self.children.values():
            yield from child.iter_records()


class DailyAggregate:
    """Per-day hierarchy trees built once from a set of cost records.

    Treated as read-only after construction; filtering produces a new
    DailyAggregate rather than changing this one.
    """

    def __init__(self, days: Dict[date, AggregateNode]):
        self._days = dict(sorted(days.items()))

    @property
    def dates(self) -> List[date]:
        return list(self._days)

    def day(self, day: date) -> AggregateNode:
        return self._days[day]

    def items(self) -> Iterator[Tuple[date, AggregateNode]]:
        return iter(self._days.items())

    def records(self) -> Iterator[CostRecord]:
        for root in self._days.values():
            yield from root.iter_records()

    @property
    def record_count(self) -> int:
        return sum(1 for _ in self.records())

    def currencies(self) -> Set[str]:
        return {record.currency for record in self.records()}

    def totals_by_day(self, currency: str = "usd") -> Dict[date, float]:
        """Total cost per day in the given currency."""
        return {day: root.cost_in(currency) for day, root in self._days.items()}

    def total_cost(self, currency: str = "usd") -> float:
        return math.fsum(self.totals_by_day(currency).values())

    def __len__(self) -> int:
        return len(self._days)


def validate_record(record: CostRecord) -> None:
    """Check a record can be placed in the hierarchy.

    Raises:
        MalformedRecordError: If a dimension value is missing or a cost is
            not a finite number
    """
    for dimension in DIMENSIONS:
        value = record.value_at(dimension)
        if value is None or not str(value).strip():
            raise MalformedRecordError(
                f"record on {record.date} is missing {dimension.value}",
                missing=dimension.value,
            )
    for name in ("cost_local", "cost_usd"):
        cost = getattr(record, name)
        if isinstance(cost, bool) or not isinstance(cost, (int, float)):
            raise MalformedRecordError(f"record on {record.date} has non-numeric {name}")
        if not math.isfinite(cost):
            raise MalformedRecordError(f"record on {record.date} has non-finite {name}")
    if not record.currency:
        raise MalformedRecordError(f"record on {record.date} has no currency", missing="currency")


def build_daily_aggregate(records: Iterable[CostRecord]) -> DailyAggregate:
    """Roll records up into one hierarchy tree per day.

    Records must already be valid; see ``validate_record``. Rollups are
    exactly rounded sums, so they do not depend on record order.
    """
    days: Dict[date, AggregateNode] = {}
    for record in records:
        node = days.setdefault(record.date, AggregateNode(key=None))
        for dimension in DIMENSIONS:
            value = record.value_at(dimension)
            child = node.children.get(value)
            if child is None:
                child = AggregateNode(key=node.child_key(value))
                node.children[value] = child
            node = child
        node.records.append(record)

    for root in days.values():
        _roll_up(root)
    return DailyAggregate(days)


def _roll_up(node: AggregateNode) -> Tuple[List[float], List[float]]:
    local = [record.cost_local for record in node.records]
    usd = [record.cost_usd for record in node.records]
    for child in node.children.values():
        child_local, child_usd = _roll_up(child)
        local.extend(child_local)
        usd.extend(child_usd)
    node.cost_local = math.fsum(local)
    node.cost_usd = math.fsum(usd)
    return local, usd


class HierarchyIndex:
    """Maps each facet key to its child facet keys.

    Covers the union of every day in an aggregate, so a facet that only
    appears on some days still cascades to all of its children.
    """

    def __init__(self, children: Dict[FacetKey, Tuple[FacetKey, ...]], roots: Tuple[FacetKey, ...]):
        self._children = children
        self._roots = roots

    @classmethod
    def from_aggregate(cls, aggregate: DailyAggregate) -> "HierarchyIndex":
        children: Dict[FacetKey, Set[FacetKey]] = {}
        roots: Set[FacetKey] = set()
        for _, root in aggregate.items():
            stack = [root]
            while stack:
                node = stack.pop()
                child_keys = {child.key for child in node.children.values()}
                if node.key is None:
                    roots.update(child_keys)
                else:
                    children.setdefault(node.key, set()).update(child_keys)
                stack.extend(node.children.values())
        return cls(
            {key: tuple(sorted(kids, key=str)) for key, kids in children.items()},
            tuple(sorted(roots, key=str)),
        )

    @property
    def roots(self) -> Tuple[FacetKey, ...]:
        """Subscription keys, sorted by value."""
        return self._roots

    def children_of(self, key: FacetKey) -> Tuple[FacetKey, ...]:
        """Direct children of a key.

        Raises:
            CascadeResolutionError: If the key is not in the hierarchy
        """
        try:
            return self._children[key]
        except KeyError:
            raise CascadeResolutionError(f"facet {key} is not in the hierarchy")

    def descendants(self, key: FacetKey) -> Iterator[FacetKey]:
        """Every key beneath ``key``, level by level."""
        queue = deque(self.children_of(key))
        while queue:
            current = queue.popleft()
            yield current
            queue.extend(self._children.get(current, ()))

    def __contains__(self, key: object) -> bool:
        return key in self._children

    def __len__(self) -> int:
        return len(self._children)


class CostRecordStore:
    """The immutable dataset a viewing session drills into.

    Malformed records are set aside with a data-quality warning instead of
    failing the load.
    """

    def __init__(self, records: Iterable[CostRecord]):
        valid: List[CostRecord] = []
        warnings: List[DataQualityWarning] = []
        for record in records:
            try:
                validate_record(record)
            except MalformedRecordError as e:
                warnings.append(DataQualityWarning("malformed_record", str(e), record.date))
                continue
            valid.append(record)

        if warnings:
            logger.warning(f"Excluded {len(warnings)} malformed cost records")

        self.records: Tuple[CostRecord, ...] = tuple(valid)
        self.warnings: Tuple[DataQualityWarning, ...] = tuple(warnings)
        self.aggregate = build_daily_aggregate(self.records)
        self.index = HierarchyIndex.from_aggregate(self.aggregate)
        logger.info(
            f"Loaded {len(self.records)} cost records over {len(self.aggregate)} days"
        )

    @property
    def malformed_count(self) -> int:
        return len(self.warnings)
