"""
BOQ Statistics

Summary figures for an extracted item list: totals, unit price spread,
per-unit breakdown, cost distribution by category and unit-price outliers.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List

from .models import LineItem

OUTLIER_STD_DEVIATIONS = 2.0
UNCATEGORIZED = "Uncategorized"


@dataclass
class BOQStatistics:
    item_count: int = 0
    total_value: float = 0.0
    average_unit_price: float = 0.0
    min_unit_price: float = 0.0
    max_unit_price: float = 0.0
    unit_price_std_dev: float = 0.0
    by_unit: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "item_count": self.item_count,
            "total_value": round(self.total_value, 2),
            "average_unit_price": round(self.average_unit_price, 2),
            "min_unit_price": self.min_unit_price,
            "max_unit_price": self.max_unit_price,
            "unit_price_std_dev": round(self.unit_price_std_dev, 2),
            "by_unit": self.by_unit,
        }


def calculate_statistics(items: List[LineItem]) -> BOQStatistics:
    if not items:
        return BOQStatistics()

    prices = [item.unit_price for item in items]
    mean = sum(prices) / len(prices)
    variance = sum((p - mean) ** 2 for p in prices) / len(prices)

    by_unit: Dict[str, Dict[str, float]] = defaultdict(lambda: {"count": 0, "quantity": 0.0, "value": 0.0})
    for item in items:
        bucket = by_unit[item.unit.upper()]
        bucket["count"] += 1
        bucket["quantity"] += item.quantity
        bucket["value"] += item.total_price

    return BOQStatistics(
        item_count=len(items),
        total_value=sum(item.total_price for item in items),
        average_unit_price=mean,
        min_unit_price=min(prices),
        max_unit_price=max(prices),
        unit_price_std_dev=math.sqrt(variance),
        by_unit=dict(by_unit),
    )


def identify_outliers(
    items: List[LineItem],
    std_deviations: float = OUTLIER_STD_DEVIATIONS,
) -> List[LineItem]:
    """Items whose unit price lies more than N standard deviations from the mean."""
    if len(items) < 3:
        return []
    stats = calculate_statistics(items)
    if stats.unit_price_std_dev == 0:
        return []
    limit = std_deviations * stats.unit_price_std_dev
    return [item for item in items if abs(item.unit_price - stats.average_unit_price) > limit]


def cost_distribution(items: List[LineItem]) -> Dict[str, Dict[str, float]]:
    """Share of total value per category, largest first."""
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for item in items:
        category = item.category or UNCATEGORIZED
        totals[category] += item.total_price
        counts[category] += 1

    grand_total = sum(totals.values())
    distribution = {}
    for category in sorted(totals, key=totals.get, reverse=True):
        distribution[category] = {
            "count": counts[category],
            "value": round(totals[category], 2),
            "share": round(totals[category] / grand_total, 4) if grand_total else 0.0,
        }
    return distribution
