"""
Shared fixtures for drill-down engine tests.
"""

from datetime import date

import pytest

from cost_drilldown.core.store import CostRecordStore
from cost_drilldown.demo.seed_demo_data import generate_demo_records
from cost_drilldown.storage.models import CostRecord

DAY_1 = date(2024, 3, 1)
DAY_2 = date(2024, 3, 2)

SUBSCRIPTIONS = ["Sub-A", "Sub-B", "Sub-C"]
CATEGORIES = ["Compute", "Databases", "Networking", "Storage", "Monitoring"]


def _record(day, subscription, category, subcategory, meter, resource, cost,
            currency="USD", cost_local=None) -> CostRecord:
    return CostRecord(
        date=day,
        subscription=subscription,
        category=category,
        subcategory=subcategory,
        meter=meter,
        resource=resource,
        cost_local=cost if cost_local is None else cost_local,
        cost_usd=cost,
        currency=currency,
    )


@pytest.fixture
def make_record():
    """Factory for a single cost record."""
    return _record


@pytest.fixture
def scenario_records():
    """Three subscriptions sharing five category names, two days.

    Each category has one subcategory, two meters and two resources per
    meter. Costs differ per subscription and category.
    """
    records = []
    for day_index, day in enumerate([DAY_1, DAY_2]):
        for s, subscription in enumerate(SUBSCRIPTIONS):
            for c, category in enumerate(CATEGORIES):
                for m in range(2):
                    for r in range(2):
                        cost = (s + 1) * 100 + c * 10 + m * 2 + r + day_index * 0.5
                        records.append(_record(
                            day,
                            subscription,
                            category,
                            f"{category} Standard",
                            f"{category} Meter {m}",
                            f"{subscription}-{category}-res{m}{r}",
                            cost,
                        ))
    return records


@pytest.fixture
def scenario_store(scenario_records):
    return CostRecordStore(scenario_records)


@pytest.fixture(scope="session")
def demo_store():
    """3 subscriptions x 5 categories x 3 subcategories x 4 meters x 10 resources."""
    return CostRecordStore(generate_demo_records(days=2))
