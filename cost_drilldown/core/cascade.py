"""
Selection cascade resolution.

Turns one toggle of one facet key into a single batch covering the key and
every descendant beneath it in the hierarchy index, then applies that batch
to the selection state in one step.
"""

import logging
from typing import Optional

from .errors import CascadeResolutionError
from .selection import SelectionBatch, SelectionSets, SelectionState
from .store import HierarchyIndex
from cost_drilldown.storage.models import FacetKey

logger = logging.getLogger(__name__)


class CascadeResolver:
    """The only writer of a SelectionState.

    Work per toggle is proportional to the number of facets beneath the
    toggled key: descendants come from the precomputed index, never from a
    scan of the records.
    """

    def __init__(self, state: SelectionState, index: HierarchyIndex):
        self.state = state
        self.index = index

    def resolve(self, key: FacetKey) -> SelectionBatch:
        """Compute the batch a toggle of ``key`` implies, without applying it.

        A selected key is retracted, even one only selected through an
        ancestor; any other key is selected.

        Raises:
            CascadeResolutionError: If the key is not in the hierarchy
        """
        descendants = tuple(self.index.descendants(key))
        return SelectionBatch(
            origin=key,
            select=not self.state.selections.contains(key),
            keys=(key,) + descendants,
        )

    def toggle(self, key: FacetKey) -> Optional[SelectionSets]:
        """Toggle ``key`` and its descendants as one batch.

        Returns:
            The new SelectionSets, or None when the key is not in the
            hierarchy (the state is left untouched and nothing is notified)
        """
        try:
            batch = self.resolve(key)
        except CascadeResolutionError as e:
            logger.warning(f"Ignoring toggle: {e}")
            return None
        return self.state.apply(batch)

    def clear(self) -> SelectionSets:
        return self.state.clear()
