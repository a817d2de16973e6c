"""
Core modules for Cost Drill-Down.

This package contains the drill-down engine: the record store, facet
selection state, cascade resolution, faceted filtering and top-N ranking.
"""
