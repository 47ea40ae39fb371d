# pipeline/receipt.py
"""
Receipt summary and cafe display names.
"""
from __future__ import annotations

import random
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cd_core.models import CoffeeTransaction, ReceiptData, Transaction
from pipeline.aggregate import UNKNOWN_SHOP, tally

MONTH_LABELS = [
    "JAN", "FEB", "MAR", "APR", "MAY", "JUN",
    "JUL", "AUG", "SEP", "OCT", "NOV", "DEC",
]
UNKNOWN_CAFE = "Unknown Cafe"
DEFAULT_PLATFORMS = ("淘宝", "美团")
RECEIPT_ID_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789"
TOP_N = 10
NAME_WIDTH = 40

CAFE_NAME_PATTERNS = [
    re.compile(r"([^·(（]+(?:coffee|咖啡|咖啡店|咖啡厅|咖啡吧|cafe|café)[^·(（]*)", re.I),
    re.compile(r"([A-Za-z\s]+(?:coffee|cafe|café))", re.I),
    re.compile(r"([^·(（]+咖啡[^·(（]*)", re.I),
]
SEPARATORS = re.compile(r"[·(（]")


def _plausible(name: str) -> bool:
    return 1 < len(name) < 50


def cafe_name(txn: Transaction, platforms: Sequence[str] = DEFAULT_PLATFORMS) -> str:
    """Best-effort display name for the cafe behind a transaction."""
    merchant = txn.merchant or ""
    desc = txn.description or ""

    if merchant and not any(p in merchant for p in platforms) and _plausible(merchant):
        return merchant

    for rx in CAFE_NAME_PATTERNS:
        m = rx.search(desc)
        if m:
            name = m.group(1).strip()
            if _plausible(name):
                return name

    return SEPARATORS.split(desc)[0].strip() or merchant or UNKNOWN_CAFE


def format_month_label(month_index: int) -> str:
    if 0 <= month_index < len(MONTH_LABELS):
        return MONTH_LABELS[month_index]
    return "UNK"


def generate_receipt_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(RECEIPT_ID_CHARS) for _ in range(12))


def _top(counts: Dict[str, int], n: int = TOP_N) -> List[Tuple[str, int]]:
    # sorted() is stable, so equal counts keep first-seen order
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]


def aggregate_receipt(
    txns: Iterable[CoffeeTransaction],
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> ReceiptData:
    items = list(txns)
    monthly = {label: 0 for label in MONTH_LABELS}
    for t in items:
        label = format_month_label(int(t.date[5:7]) - 1)
        monthly[label] = monthly.get(label, 0) + 1

    shops = tally(t.merchant or UNKNOWN_SHOP for t in items if not t.is_beans)
    bean_merchants = tally(t.merchant or UNKNOWN_SHOP for t in items if t.is_beans)

    now = now or datetime.now()
    return ReceiptData(
        total=len(items),
        monthly=monthly,
        top_shops=_top(shops),
        top_bean_merchants=_top(bean_merchants),
        receipt_id=generate_receipt_id(rng),
        generated_date=now.strftime("%Y/%m/%d"),
    )


def _truncate(name: str, width: int = NAME_WIDTH) -> str:
    return name[:width] + "..." if len(name) > width else name


def render_receipt_text(data: ReceiptData, width: int = 48) -> str:
    """Plain-text rendition of the receipt."""
    rule = "-" * width
    lines = [
        "COFFEE RECEIPT".center(width),
        f"#{data.receipt_id}".center(width),
        data.generated_date.center(width),
        rule,
        f"{'TOTAL CUPS':<{width - 8}}{data.total:>8}",
        rule,
    ]
    for label, count in data.monthly.items():
        lines.append(f"{label:<{width - 8}}{count:>8}")

    if data.top_shops:
        lines += [rule, "TOP SHOPS"]
        for rank, (name, count) in enumerate(data.top_shops, start=1):
            lines.append(f"#{rank} {_truncate(name)}  x{count}")

    if data.top_bean_merchants:
        lines += [rule, "TOP BEAN MERCHANTS"]
        for rank, (name, count) in enumerate(data.top_bean_merchants, start=1):
            lines.append(f"#{rank} {_truncate(name)}  x{count}")

    lines += [rule, "THANK YOU".center(width)]
    return "\n".join(lines)
