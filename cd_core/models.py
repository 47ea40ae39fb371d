from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


class TransactionType(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    MIXED = "mixed"


class Source(str, Enum):
    ALIPAY = "alipay"
    WECHATPAY = "wechatpay"


@dataclass(frozen=True)
class Transaction:
    date: str  # YYYY-MM-DD
    time: str  # HH:MM:SS
    merchant: str
    description: str
    account: str
    amount: float
    type: TransactionType = TransactionType.OUTGOING
    source: Source = Source.ALIPAY
    # remaining export columns, kept for display
    datetime: str = ""
    category: str = ""
    payment_method: str = ""
    status: str = ""
    transaction_id: str = ""
    merchant_order_id: str = ""
    note: str = ""
    # derived from the account before it may be scrubbed
    is_known_chain_account: bool = False
    is_delivery_platform_account: bool = False


@dataclass(frozen=True)
class CoffeeTransaction(Transaction):
    is_coffee: bool = False
    confidence: float = 0.0
    matched_keywords: List[str] = field(default_factory=list)
    is_beans: bool = False


CoffeeDataByDate = Dict[str, List[CoffeeTransaction]]


@dataclass
class CoffeeStatistics:
    total_purchases: int = 0
    total_spending: float = 0.0
    average_per_month: float = 0.0
    average_per_week: float = 0.0
    most_frequent_shop: str = ""
    purchase_frequency: Dict[str, int] = field(default_factory=dict)
    shop_counts: Dict[str, int] = field(default_factory=dict)
    bean_merchant_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class ReceiptData:
    total: int
    monthly: Dict[str, int]
    top_shops: List[Tuple[str, int]] = field(default_factory=list)
    top_bean_merchants: List[Tuple[str, int]] = field(default_factory=list)
    receipt_id: str = ""
    generated_date: str = ""
