"""
Data models for the cost record store.

Defines the cost hierarchy dimensions, the immutable daily cost records
produced by the collectors, and the facet keys used for selection.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class Dimension(Enum):
    """Dimensions of the cost hierarchy, outermost first."""
    SUBSCRIPTION = "subscription"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"
    METER = "meter"
    RESOURCE = "resource"

    @property
    def level(self) -> int:
        """Depth of this dimension in the hierarchy (subscription is 0)."""
        return DIMENSIONS.index(self)

    @property
    def child(self) -> Optional["Dimension"]:
        """The next dimension down, or None for resource."""
        if self.level + 1 < len(DIMENSIONS):
            return DIMENSIONS[self.level + 1]
        return None

    @classmethod
    def parse(cls, name: str) -> "Dimension":
        """Look up a dimension by name, case-insensitively.

        Raises:
            ValueError: If the name is not a known dimension
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = [d.value for d in cls]
            raise ValueError(f"Unknown dimension '{name}', must be one of: {valid}")


DIMENSIONS: Tuple[Dimension, ...] = tuple(Dimension)


@dataclass(frozen=True)
class CostRecord:
    """One leaf observation of daily cost.

    Records are produced by the collectors and never modified afterwards.
    Dimension values can be missing on malformed rows; the store rejects
    those before any aggregation.
    """
    date: date
    subscription: Optional[str]
    category: Optional[str]
    subcategory: Optional[str]
    meter: Optional[str]
    resource: Optional[str]
    cost_local: float
    cost_usd: float
    currency: str

    def value_at(self, dimension: Dimension) -> Optional[str]:
        """Value of this record at the given dimension."""
        return getattr(self, dimension.value)

    def path(self) -> Tuple[Optional[str], ...]:
        """Dimension values from subscription down to resource."""
        return tuple(self.value_at(d) for d in DIMENSIONS)

    def cost_in(self, currency: str) -> float:
        """Cost in the report currency ("usd" or "local")."""
        if currency == "local":
            return self.cost_local
        return self.cost_usd


@dataclass(frozen=True)
class FacetKey:
    """A facet value qualified by its ancestor path.

    The same value under a different ancestor is a different key:
    ``FacetKey(CATEGORY, "Storage", ("Sub-A",))`` and
    ``FacetKey(CATEGORY, "Storage", ("Sub-B",))`` never match each other.
    """
    dimension: Dimension
    value: str
    ancestors: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate the ancestor path matches the dimension depth."""
        if not self.value:
            raise ValueError("facet value cannot be empty")
        if len(self.ancestors) != self.dimension.level:
            raise ValueError(
                f"{self.dimension.value} facet needs {self.dimension.level} "
                f"ancestors, got {len(self.ancestors)}"
            )

    @property
    def context(self) -> Tuple[str, ...]:
        """Ancestor context under which this value is selected."""
        return self.ancestors

    @property
    def path(self) -> Tuple[str, ...]:
        """Full path from subscription down to this value."""
        return self.ancestors + (self.value,)

    @property
    def parent(self) -> Optional["FacetKey"]:
        """Key one level up, or None for a subscription."""
        if not self.ancestors:
            return None
        return FacetKey.from_path(self.ancestors)

    def covers(self, other: "FacetKey") -> bool:
        """Whether ``other`` is this key or sits beneath it."""
        return other.path[:len(self.path)] == self.path

    def child(self, value: str) -> "FacetKey":
        """Key of a child value beneath this one."""
        child_dimension = self.dimension.child
        if child_dimension is None:
            raise ValueError("resource facets have no children")
        return FacetKey(child_dimension, value, self.path)

    @classmethod
    def from_path(cls, path: Tuple[str, ...]) -> "FacetKey":
        """Build the key addressed by a path such as ("Sub-A", "Storage")."""
        if not path or len(path) > len(DIMENSIONS):
            raise ValueError(f"path must have 1 to {len(DIMENSIONS)} parts")
        return cls(DIMENSIONS[len(path) - 1], path[-1], tuple(path[:-1]))

    @classmethod
    def for_record(cls, dimension: Dimension, record: CostRecord) -> "FacetKey":
        """Key that a record carries at the given dimension."""
        path = record.path()[:dimension.level + 1]
        if any(not part for part in path):
            raise ValueError(
                f"record on {record.date} has no {dimension.value} context"
            )
        return cls(dimension, path[-1], tuple(path[:-1]))

    def __str__(self) -> str:
        return "/".join(self.path)
