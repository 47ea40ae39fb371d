# cd_utils/normalizers.py
from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Tuple

from cd_core.models import TransactionType


# ---------------- Amount normalization ----------------

# "¥14.80", "14.80", "1,234.50", " ￥ 9 "
_CURRENCY_NOISE = re.compile(r"[¥￥,\s]")
NUM_RX = re.compile(r"^-?\d+(?:\.\d+)?$")


def normalize_amount(raw: Optional[str]) -> Optional[float]:
    """Return the absolute amount in yuan, or None when unparseable."""
    if raw is None:
        return None
    s = _CURRENCY_NOISE.sub("", str(raw))
    if not NUM_RX.match(s):
        return None
    try:
        return abs(float(s))
    except ValueError:
        return None


# ---------------- Dates ----------------

# 2025-12-01 13:58:02 | 2025/12/01 13:58 | 2025-12-01T13:58:02
YMD_TIME_RX = re.compile(
    r"^\s*(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:[\sT]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)
# 20251201
COMPACT_RX = re.compile(r"^\s*(\d{4})(\d{2})(\d{2})")


def split_datetime(raw: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Split an export datetime cell into ("YYYY-MM-DD", "HH:MM:SS").
    Missing time becomes 00:00:00. Returns None for anything unparseable.
    """
    if not raw:
        return None
    s = str(raw).strip()

    m = YMD_TIME_RX.match(s)
    if m:
        y, mon, d = int(m.group(1)), int(m.group(2)), int(m.group(3))
        hh = int(m.group(4) or 0)
        mm = int(m.group(5) or 0)
        ss = int(m.group(6) or 0)
    else:
        m = COMPACT_RX.match(s)
        if not m:
            return None
        y, mon, d = int(m.group(1)), int(m.group(2)), int(m.group(3))
        hh = mm = ss = 0

    try:
        dt = datetime(y, mon, d, hh, mm, ss)
    except ValueError:
        return None
    return dt.date().isoformat(), dt.strftime("%H:%M:%S")


# ---------------- Direction ----------------


def normalize_type(raw: Optional[str]) -> TransactionType:
    """Map the 收/支 column to a TransactionType."""
    s = (raw or "").strip()
    if s == "支出":
        return TransactionType.OUTGOING
    if s == "收入":
        return TransactionType.INCOMING
    return TransactionType.MIXED
