from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Sequence

from cd_core.models import Transaction, TransactionType


class BaseAdapter(ABC):
    """Turn one provider export file into canonical Transactions."""

    def __init__(
        self,
        *,
        target_year: int | None = 2025,
        chain_account_domains: Sequence[str] = (),
        delivery_account_markers: Sequence[str] = (),
        scrub_account: bool = False,
    ):
        self.target_year = target_year
        self.chain_account_domains = [d.lower() for d in chain_account_domains]
        self.delivery_account_markers = [m.lower() for m in delivery_account_markers]
        self.scrub_account = scrub_account

    @abstractmethod
    def read(self, path: Path) -> List[Transaction]: ...

    def read_many(self, paths: Iterable[Path]) -> List[Transaction]:
        out: List[Transaction] = []
        for p in paths:
            out.extend(self.read(Path(p)))
        return out

    def accepts(self, date: str, kind: TransactionType) -> bool:
        """Only outgoing payments in the target year reach the classifiers."""
        if kind is not TransactionType.OUTGOING:
            return False
        if self.target_year is not None and not date.startswith(str(self.target_year)):
            return False
        return True

    def finish(self, txn: Transaction) -> Transaction:
        """Derive the account flags, then optionally drop the account text."""
        account = (txn.account or "").lower()
        txn = replace(
            txn,
            is_known_chain_account=any(d in account for d in self.chain_account_domains),
            is_delivery_platform_account=any(
                m in account for m in self.delivery_account_markers
            ),
        )
        if self.scrub_account:
            txn = replace(txn, account="")
        return txn


def combine_transactions(*batches: Iterable[Transaction]) -> List[Transaction]:
    out: List[Transaction] = []
    for b in batches:
        out.extend(b)
    return out
