"""
Facet selection state.

SelectionSets is the immutable snapshot the filter evaluator reads: per
dimension, which values are selected and under which ancestor contexts.
SelectionState is the single mutable holder behind it. It is written only
through ``apply`` and ``clear``, each of which notifies listeners once.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from cost_drilldown.storage.models import DIMENSIONS, Dimension, FacetKey

logger = logging.getLogger(__name__)

Context = Tuple[str, ...]


class SelectionSets:
    """Per-dimension selected values with the contexts they are selected under.

    An empty dimension is unconstrained: it admits every value when
    filtering. Instances are never modified after construction.
    """

    def __init__(self, by_dimension: Optional[Mapping[Dimension, Mapping[str, Iterable[Context]]]] = None):
        by_dimension = by_dimension or {}
        sets: Dict[Dimension, Mapping[str, FrozenSet[Context]]] = {}
        for dimension in DIMENSIONS:
            values = {
                value: frozenset(contexts)
                for value, contexts in by_dimension.get(dimension, {}).items()
                if contexts
            }
            sets[dimension] = MappingProxyType(values)
        self._sets = sets

    @classmethod
    def empty(cls) -> "SelectionSets":
        return cls()

    @classmethod
    def from_facet_keys(cls, keys: Iterable[FacetKey]) -> "SelectionSets":
        """Snapshot selecting exactly the given keys, with no cascading."""
        by_dimension: Dict[Dimension, Dict[str, Set[Context]]] = {}
        for key in keys:
            by_dimension.setdefault(key.dimension, {}).setdefault(key.value, set()).add(key.context)
        return cls(by_dimension)

    def values(self, dimension: Dimension) -> Mapping[str, FrozenSet[Context]]:
        return self._sets[dimension]

    def is_unconstrained(self, dimension: Dimension) -> bool:
        return not self._sets[dimension]

    @property
    def is_empty(self) -> bool:
        return all(not values for values in self._sets.values())

    def contains(self, key: FacetKey) -> bool:
        return key.context in self._sets[key.dimension].get(key.value, ())

    def admits(self, dimension: Dimension, value: str, context: Context) -> bool:
        """Inclusion test for one dimension, independent of all others."""
        values = self._sets[dimension]
        if not values:
            return True
        return context in values.get(value, ())

    def facet_keys(self) -> FrozenSet[FacetKey]:
        return frozenset(
            FacetKey(dimension, value, context)
            for dimension, values in self._sets.items()
            for value, contexts in values.items()
            for context in contexts
        )

    def count(self, dimension: Optional[Dimension] = None) -> int:
        """Number of selected facet keys, overall or for one dimension."""
        dimensions = DIMENSIONS if dimension is None else (dimension,)
        return sum(
            len(contexts)
            for d in dimensions
            for contexts in self._sets[d].values()
        )

    def __len__(self) -> int:
        return self.count()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectionSets):
            return NotImplemented
        return all(dict(self._sets[d]) == dict(other._sets[d]) for d in DIMENSIONS)

    def __repr__(self) -> str:
        active = {d.value: len(self._sets[d]) for d in DIMENSIONS if self._sets[d]}
        return f"SelectionSets({active})"


@dataclass(frozen=True)
class SelectionBatch:
    """All mutations implied by one toggle, applied together.

    ``keys`` holds the toggled key followed by its descendants; each of
    them gains ``origin`` as a justification (select), or loses every
    justification that reached it through ``origin`` (retract).
    """
    origin: FacetKey
    select: bool
    keys: Tuple[FacetKey, ...]


SelectionListener = Callable[[SelectionSets], None]


class SelectionState:
    """Mutable selection holder with justification tracking.

    Every selected key remembers which explicitly toggled keys selected it.
    A key stays selected while at least one justification remains, so
    retracting one ancestor never drops a key another selection still
    covers.

    Retracting a key also drops the justifications that reached it through
    its ancestors, so a key selected only because its parent was selected
    can still be switched off. Those dropped justifications are kept aside
    and handed back if the same key is selected again.
    """

    def __init__(self):
        self._justifications: Dict[FacetKey, Set[FacetKey]] = {}
        self._retracted: Dict[FacetKey, Dict[FacetKey, FrozenSet[FacetKey]]] = {}
        self._sets: Dict[Dimension, Dict[str, Set[Context]]] = {d: {} for d in DIMENSIONS}
        self._snapshot: Optional[SelectionSets] = SelectionSets.empty()
        self._listeners: List[SelectionListener] = []

    @property
    def selections(self) -> SelectionSets:
        """Current immutable snapshot."""
        if self._snapshot is None:
            self._snapshot = SelectionSets(self._sets)
        return self._snapshot

    def is_explicit(self, key: FacetKey) -> bool:
        """Whether the key itself was toggled on, rather than cascaded onto."""
        return key in self._justifications.get(key, ())

    def justifications(self, key: FacetKey) -> FrozenSet[FacetKey]:
        return frozenset(self._justifications.get(key, ()))

    def subscribe(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    def apply(self, batch: SelectionBatch) -> SelectionSets:
        """Apply one batch and notify listeners once."""
        if batch.select:
            self._select(batch)
        else:
            self._retract(batch)
        self._snapshot = None
        logger.debug(
            f"{'Selected' if batch.select else 'Retracted'} {batch.origin} "
            f"across {len(batch.keys)} facets"
        )
        return self._notify()

    def clear(self) -> SelectionSets:
        """Reset every dimension to unconstrained.

        Does nothing, and sends no notification, when already clear.
        """
        self._retracted.clear()
        if not self._justifications:
            return self.selections
        self._justifications.clear()
        self._sets = {d: {} for d in DIMENSIONS}
        self._snapshot = SelectionSets.empty()
        return self._notify()

    def _select(self, batch: SelectionBatch) -> None:
        origin = batch.origin
        if self._restore(origin):
            return
        for key in batch.keys:
            self._justify(key, origin)

    def _restore(self, origin: FacetKey) -> bool:
        """Hand back what the last retraction of ``origin`` dropped.

        Only justifications from ``origin`` itself, or from ancestors that
        still reach its parent, are restored. Returns whether anything was
        restored onto ``origin``.
        """
        dropped = self._retracted.pop(origin, {})
        parent = origin.parent
        reaching: FrozenSet[FacetKey] = frozenset()
        if parent is not None:
            reaching = frozenset(self._justifications.get(parent, ()))
        restored = False
        for key, origins in dropped.items():
            for justification in origins:
                if justification == origin or justification in reaching:
                    self._justify(key, justification)
                    restored = restored or key == origin
        return restored

    def _retract(self, batch: SelectionBatch) -> None:
        origin = batch.origin
        dropped: Dict[FacetKey, FrozenSet[FacetKey]] = {}
        for key in batch.keys:
            origins = self._justifications.get(key)
            if not origins:
                continue
            through = frozenset(o for o in origins if o.covers(origin))
            if through:
                dropped[key] = through
                self._unjustify(key, through)
        self._retracted[origin] = dropped

    def _justify(self, key: FacetKey, origin: FacetKey) -> None:
        origins = self._justifications.setdefault(key, set())
        if not origins:
            self._sets[key.dimension].setdefault(key.value, set()).add(key.context)
        origins.add(origin)

    def _unjustify(self, key: FacetKey, dropped: FrozenSet[FacetKey]) -> None:
        origins = self._justifications[key]
        origins -= dropped
        if origins:
            return
        del self._justifications[key]
        contexts = self._sets[key.dimension].get(key.value)
        if contexts is not None:
            contexts.discard(key.context)
            if not contexts:
                del self._sets[key.dimension][key.value]

    def _notify(self) -> SelectionSets:
        snapshot = self.selections
        for listener in self._listeners:
            listener(snapshot)
        return snapshot
