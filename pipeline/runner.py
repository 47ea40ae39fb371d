# pipeline/runner.py
"""
End-to-end pipeline:
  alipay *.csv / wechatpay *.xlsx --adapters--> Transactions
    --categorizer--> CoffeeTransactions --aggregate--> JSON document

The document is what the display layer and the cache store consume:
  {schema_version, coffee_transactions, coffee_by_date, statistics, processed_at}
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from adapters.alipay import AlipayAdapter
from adapters.base import combine_transactions
from adapters.wechatpay import WeChatPayAdapter
from categorizer.service import CategorizerService
from cd_core.models import (
    CoffeeStatistics,
    CoffeeTransaction,
    Source,
    Transaction,
    TransactionType,
)
from config.loader import setting
from pipeline.aggregate import aggregate

log = logging.getLogger("pipeline")

SCHEMA_VERSION = "1.0"
ALIPAY_EXTS = {".csv"}
WECHATPAY_EXTS = {".xlsx", ".xls"}


def to_jsonable(obj: Any) -> Any:
    """
    JSON-friendly deep converter for dataclasses nested in lists/dicts.
    Enums become their values, date/datetime ISO 8601 strings.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {k: to_jsonable(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    return obj


def make_adapters(service: CategorizerService, cfg: Optional[Dict[str, Any]] = None):
    """Build both adapters from config.toml settings and the rule YAML privacy lists."""
    cfg = cfg or {}
    privacy = service.section("privacy")
    kw = dict(
        target_year=setting(cfg, "ingest", "target_year"),
        chain_account_domains=privacy.get("chain_account_domains", []),
        delivery_account_markers=privacy.get("delivery_account_markers", []),
        scrub_account=bool(setting(cfg, "privacy", "scrub_account")),
    )
    return AlipayAdapter(**kw), WeChatPayAdapter(**kw)


def discover_exports(paths: Iterable[Path]) -> Dict[str, List[Path]]:
    """Split files/folders into Alipay CSVs and WeChat Pay workbooks."""
    found: Dict[str, List[Path]] = {"alipay": [], "wechatpay": []}
    for root in paths:
        root = Path(root)
        candidates = sorted(root.rglob("*")) if root.is_dir() else [root]
        for p in candidates:
            if not p.is_file() or p.name.startswith("~$"):
                continue
            ext = p.suffix.lower()
            if ext in ALIPAY_EXTS:
                found["alipay"].append(p)
            elif ext in WECHATPAY_EXTS:
                found["wechatpay"].append(p)
    return found


def process_transactions(
    txns: Iterable[Transaction],
    service: CategorizerService,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Classify, keep coffee only, aggregate, and build the document."""
    coffee = service.coffee_only(txns)
    result = aggregate(coffee)
    stats = result.statistics
    log.info(
        "Coffee purchases=%d spending=%.2f avg/month=%.1f top=%s",
        stats.total_purchases,
        stats.total_spending,
        stats.average_per_month,
        stats.most_frequent_shop or "-",
    )
    return {
        "schema_version": SCHEMA_VERSION,
        "coffee_transactions": to_jsonable(coffee),
        "coffee_by_date": to_jsonable(result.by_date),
        "statistics": to_jsonable(stats),
        "processed_at": (now or datetime.now()).isoformat(),
    }


def process_paths(
    alipay_paths: Iterable[Path],
    wechat_paths: Iterable[Path],
    service: CategorizerService,
    cfg: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    alipay, wechat = make_adapters(service, cfg)
    alipay_txns = alipay.read_many(alipay_paths)
    # one broken quarterly workbook should not sink the others
    wechat_txns: List[Transaction] = []
    for p in wechat_paths:
        try:
            wechat_txns.extend(wechat.read(Path(p)))
        except (OSError, ValueError) as exc:
            log.error("Error parsing file %s: %s", p, exc)
    txns = combine_transactions(alipay_txns, wechat_txns)
    log.info("Total transactions: %d", len(txns))
    return process_transactions(txns, service, now=now)


def write_document(doc: Dict[str, Any], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
    return out_path


# ---------------- Reload ----------------

_TXN_FIELDS = {f.name for f in fields(CoffeeTransaction)}


def coffee_transaction_from_dict(d: Dict[str, Any]) -> CoffeeTransaction:
    data = {k: v for k, v in d.items() if k in _TXN_FIELDS}
    data["type"] = TransactionType(data.get("type", TransactionType.OUTGOING.value))
    data["source"] = Source(data.get("source", Source.ALIPAY.value))
    data["matched_keywords"] = list(data.get("matched_keywords", []))
    return CoffeeTransaction(**data)


def document_from_dict(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild dataclasses from a reloaded JSON document."""
    stats_fields = {f.name for f in fields(CoffeeStatistics)}
    return {
        "schema_version": doc.get("schema_version", SCHEMA_VERSION),
        "coffee_transactions": [
            coffee_transaction_from_dict(t) for t in doc.get("coffee_transactions", [])
        ],
        "coffee_by_date": {
            day: [coffee_transaction_from_dict(t) for t in bucket]
            for day, bucket in doc.get("coffee_by_date", {}).items()
        },
        "statistics": CoffeeStatistics(
            **{k: v for k, v in doc.get("statistics", {}).items() if k in stats_fields}
        ),
        "processed_at": doc.get("processed_at"),
    }
