# adapters/wechatpay.py
"""
WeChat Pay Excel export (one workbook per quarter).

The first worksheet carries a preamble; the header row is the first row (of
the first 20) whose first cell mentions 交易时间. Columns are located by
header text, with positional defaults when a header is missing.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd

from adapters.base import BaseAdapter
from cd_core.models import Source, Transaction, TransactionType
from cd_utils.normalizers import normalize_amount, normalize_type, split_datetime

log = logging.getLogger("adapters.wechatpay")

HEADER_SCAN_ROWS = 20

# (field, header substrings), first match per header cell wins
COLUMN_HINTS = [
    ("datetime", ("交易时间", "支付时间", "时间")),
    ("category", ("交易类型", "类型")),
    ("merchant", ("交易对方", "对方")),
    ("description", ("商品", "商品说明")),
    ("type", ("收/支", "收支")),
    ("amount", ("金额",)),
    ("payment_method", ("支付方式", "付款方式")),
    ("status", ("交易状态", "状态")),
    ("transaction_id", ("交易单号", "交易订单号")),
    ("merchant_order_id", ("商户单号", "商家订单号")),
    ("note", ("备注",)),
]

DEFAULT_COLUMNS = {
    "datetime": 0,
    "category": 1,
    "merchant": 2,
    "description": 3,
    "type": 4,
    "amount": 5,
    "payment_method": 6,
    "status": 7,
    "transaction_id": 8,
    "merchant_order_id": 9,
    "note": 10,
}


def find_header(rows: Sequence[Sequence[str]]) -> int:
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        if row and "交易时间" in str(row[0]).strip():
            return i
    return -1


def map_columns(header: Sequence[str]) -> Dict[str, int]:
    cols: Dict[str, int] = {}
    for idx, cell in enumerate(header):
        col = str(cell).strip().lower()
        for name, hints in COLUMN_HINTS:
            if any(h in col for h in hints):
                cols.setdefault(name, idx)
                break
    return {**DEFAULT_COLUMNS, **cols}


def load_rows(path: Path) -> List[List[str]]:
    """First worksheet as a list of string rows ('' for empty cells)."""
    df = pd.read_excel(path, sheet_name=0, header=None, dtype=str)
    df = df.fillna("")
    return [[str(c).strip() for c in row] for row in df.itertuples(index=False)]


class WeChatPayAdapter(BaseAdapter):
    source = Source.WECHATPAY

    def read(self, path: Path) -> List[Transaction]:
        log.info("Parsing WeChat Pay Excel: %s", path)
        return self.parse_rows(load_rows(Path(path)), label=str(path))

    def parse_rows(self, rows: List[List[str]], label: str = "") -> List[Transaction]:
        header_idx = find_header(rows)
        if header_idx == -1:
            log.warning("  Could not find header row in %s", label)
            return []

        cols = map_columns(rows[header_idx])
        out: List[Transaction] = []
        for row in rows[header_idx + 1 :]:
            txn = self.parse_row(row, cols)
            if txn is not None:
                out.append(txn)

        log.info("  Found %d transactions from %s", len(out), self.target_year)
        return out

    def parse_row(self, row: List[str], cols: Dict[str, int]) -> Transaction | None:
        if not row:
            return None

        def cell(name: str) -> str:
            idx = cols[name]
            return str(row[idx]).strip() if idx < len(row) else ""

        dt_raw = cell("datetime")
        if not dt_raw or dt_raw == "/":
            return None
        parts = split_datetime(dt_raw)
        if parts is None:
            log.debug("skip row with bad datetime %r", dt_raw)
            return None
        date, time = parts

        kind_raw = cell("type")
        kind = TransactionType.OUTGOING if "支出" in kind_raw else normalize_type(kind_raw)
        if not self.accepts(date, kind):
            return None

        amount = normalize_amount(cell("amount"))
        if amount is None:
            log.debug("skip row with bad amount %r", cell("amount"))
            return None

        return self.finish(
            Transaction(
                date=date,
                time=time,
                merchant=cell("merchant"),
                description=cell("description"),
                account="",
                amount=amount,
                type=kind,
                source=self.source,
                datetime=dt_raw,
                category=cell("category"),
                payment_method=cell("payment_method"),
                status=cell("status"),
                transaction_id=cell("transaction_id"),
                merchant_order_id=cell("merchant_order_id"),
                note=cell("note"),
            )
        )
