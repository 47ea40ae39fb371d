# pipeline/aggregate.py
"""
Roll classified coffee transactions up into a date-indexed map and summary
statistics. Pure in-memory fold; input must already be coffee-only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from cd_core.models import CoffeeDataByDate, CoffeeStatistics, CoffeeTransaction

WEEKS_PER_MONTH = 4.33
UNKNOWN_SHOP = "Unknown"


@dataclass
class AggregateResult:
    by_date: CoffeeDataByDate = field(default_factory=dict)
    statistics: CoffeeStatistics = field(default_factory=CoffeeStatistics)


def group_by_date(txns: Iterable[CoffeeTransaction]) -> CoffeeDataByDate:
    """Bucket by date; each bucket sorted by HH:MM:SS (stable on ties)."""
    grouped: CoffeeDataByDate = {}
    for t in txns:
        grouped.setdefault(t.date, []).append(t)
    for bucket in grouped.values():
        bucket.sort(key=lambda t: t.time)
    return grouped


def tally(names: Iterable[str]) -> Dict[str, int]:
    """Insertion-ordered counts (first-seen order is kept)."""
    counts: Dict[str, int] = {}
    for n in names:
        counts[n] = counts.get(n, 0) + 1
    return counts


def most_frequent(counts: Dict[str, int]) -> str:
    """Highest count; the first-seen name wins an exact tie."""
    best, best_count = "", 0
    for name, n in counts.items():
        if n > best_count:
            best, best_count = name, n
    return best


def calculate_statistics(txns: List[CoffeeTransaction]) -> CoffeeStatistics:
    if not txns:
        return CoffeeStatistics()

    total = len(txns)
    spending = sum(t.amount for t in txns)
    frequency = tally(t.date[:7] for t in txns)
    shops = tally(t.merchant or UNKNOWN_SHOP for t in txns)

    months = len(frequency)
    weeks = months * WEEKS_PER_MONTH

    return CoffeeStatistics(
        total_purchases=total,
        total_spending=spending,
        average_per_month=total / months if months else 0.0,
        average_per_week=total / weeks if weeks else 0.0,
        most_frequent_shop=most_frequent(shops),
        purchase_frequency=frequency,
        shop_counts=tally(t.merchant or UNKNOWN_SHOP for t in txns if not t.is_beans),
        bean_merchant_counts=tally(
            t.merchant or UNKNOWN_SHOP for t in txns if t.is_beans
        ),
    )


def merge_by_date(*parts: CoffeeDataByDate) -> CoffeeDataByDate:
    """Merge per-worker partial maps; order is restored by the final sort."""
    return group_by_date(t for part in parts for bucket in part.values() for t in bucket)


def aggregate(txns: Iterable[CoffeeTransaction]) -> AggregateResult:
    items = list(txns)
    return AggregateResult(by_date=group_by_date(items), statistics=calculate_statistics(items))
