# adapters/alipay.py
"""
Alipay CSV export.

The file is GBK-encoded, carries ~24 lines of account preamble, the header on
line 25 and data from line 26. Columns:
  交易时间,交易分类,交易对方,对方账号,商品说明,收/支,金额,收/付款方式,交易状态,交易订单号,商家订单号,备注
"""
from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import List

from adapters.base import BaseAdapter
from cd_core.models import Source, Transaction
from cd_utils.normalizers import normalize_amount, normalize_type, split_datetime

log = logging.getLogger("adapters.alipay")

HEADER_LINE = 24  # zero-based
MIN_COLUMNS = 12
ENCODINGS = ("utf-8-sig", "gb18030")


def decode_bytes(blob: bytes) -> str:
    for enc in ENCODINGS:
        try:
            return blob.decode(enc)
        except UnicodeDecodeError:
            continue
    return blob.decode(ENCODINGS[-1], errors="replace")


class AlipayAdapter(BaseAdapter):
    source = Source.ALIPAY

    def read(self, path: Path) -> List[Transaction]:
        log.info("Parsing Alipay CSV: %s", path)
        text = decode_bytes(Path(path).read_bytes())
        lines = text.splitlines(keepends=True)

        if len(lines) <= HEADER_LINE or not lines[HEADER_LINE].strip():
            raise ValueError(f"Could not find CSV header in {path}")

        # parse the body as one stream so quoted fields may span lines
        body = io.StringIO("".join(lines[HEADER_LINE + 1 :]))
        out: List[Transaction] = []
        for row in csv.reader(body):
            if not any(c.strip() for c in row):
                continue
            txn = self.parse_row([c.strip() for c in row])
            if txn is not None:
                out.append(txn)

        log.info("  Found %d transactions from %s", len(out), self.target_year)
        return out

    def parse_row(self, row: List[str]) -> Transaction | None:
        if len(row) < MIN_COLUMNS:
            log.debug("skip short row (%d cols)", len(row))
            return None

        (
            dt_raw,
            category,
            merchant,
            account,
            description,
            kind_raw,
            amount_raw,
            payment_method,
            status,
            transaction_id,
            merchant_order_id,
            note,
        ) = row[:MIN_COLUMNS]

        parts = split_datetime(dt_raw)
        if parts is None:
            log.debug("skip row with bad datetime %r", dt_raw)
            return None
        date, time = parts

        kind = normalize_type(kind_raw)
        if not self.accepts(date, kind):
            return None

        amount = normalize_amount(amount_raw)
        if amount is None:
            log.debug("skip row with bad amount %r", amount_raw)
            return None

        return self.finish(
            Transaction(
                date=date,
                time=time,
                merchant=merchant,
                description=description,
                account=account,
                amount=amount,
                type=kind,
                source=self.source,
                datetime=dt_raw,
                category=category,
                payment_method=payment_method,
                status=status,
                transaction_id=transaction_id,
                merchant_order_id=merchant_order_id,
                note=note,
            )
        )
