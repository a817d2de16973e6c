# cost_drilldown/demo/seed_demo_data.py

import random
from datetime import date, timedelta
from typing import List, Optional

from cost_drilldown.storage.models import CostRecord
from cost_drilldown.storage.repository import initialize_schema, insert_cost_records

CATEGORIES = ["Compute", "Storage", "Networking", "Databases", "Monitoring"]


def generate_demo_records(
    subscriptions: int = 3,
    categories: int = 5,
    subcategories: int = 3,
    meters: int = 4,
    resources: int = 10,
    days: int = 7,
    start: Optional[date] = None,
    seed: int = 42,
) -> List[CostRecord]:
    """Deterministic demo dataset: every subscription shares category names."""
    rng = random.Random(seed)
    start = start or date(2024, 1, 1)
    category_names = (CATEGORIES + [f"Category {i}" for i in range(len(CATEGORIES), categories)])[:categories]

    records = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        for s in range(subscriptions):
            subscription = f"Sub-{chr(ord('A') + s)}"
            for category in category_names:
                for sc in range(subcategories):
                    subcategory = f"{category} Tier {sc + 1}"
                    for m in range(meters):
                        meter = f"{subcategory} Meter {m + 1}"
                        for r in range(resources):
                            cost = round(rng.uniform(0.5, 20.0) * (s + 1), 2)
                            records.append(CostRecord(
                                date=day,
                                subscription=subscription,
                                category=category,
                                subcategory=subcategory,
                                meter=meter,
                                resource=f"{subscription.lower()}-{category.lower()}-{sc}{m}{r}",
                                cost_local=round(cost * 0.92, 2),
                                cost_usd=cost,
                                currency="EUR",
                            ))
    return records


if __name__ == "__main__":
    initialize_schema()
    inserted = insert_cost_records(generate_demo_records())
    print(f"Demo cost data inserted ({inserted} records)")
