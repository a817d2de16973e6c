"""
Tests that every package imports from the installed layout.
"""

import importlib

import pytest

MODULES = [
    "cost_drilldown.cli.main",
    "cost_drilldown.config.loader",
    "cost_drilldown.core.cascade",
    "cost_drilldown.core.filtering",
    "cost_drilldown.core.ranking",
    "cost_drilldown.core.session",
    "cost_drilldown.demo.seed_demo_data",
    "cost_drilldown.storage.repository",
]


@pytest.mark.parametrize("name", MODULES)
def test_module_imports(name):
    assert importlib.import_module(name).__name__ == name


def test_root_is_a_namespace_package():
    import cost_drilldown
    assert getattr(cost_drilldown, "__file__", None) is None
