# pipeline/filters.py
"""
Display filters over classified coffee transactions: chain vs independent
cafe, bean purchases, equipment and delivery orders.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from cd_core.models import CoffeeDataByDate, CoffeeTransaction
from pipeline.receipt import DEFAULT_PLATFORMS, UNKNOWN_CAFE, cafe_name


@dataclass
class BrandMarkers:
    """Lower-cased markers identifying one coffee brand."""

    merchant: List[str] = field(default_factory=list)
    description: List[str] = field(default_factory=list)
    accounts: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "BrandMarkers":
        def low(name: str) -> List[str]:
            return [str(x).lower() for x in cfg.get(name) or []]

        return cls(
            merchant=low("merchant"),
            description=low("description"),
            accounts=low("accounts"),
            keywords=low("keywords"),
        )


@dataclass
class DisplayVocabulary:
    chains: List[str] = field(default_factory=list)
    equipment: List[str] = field(default_factory=list)
    delivery_merchant: List[str] = field(default_factory=list)
    delivery_description: List[str] = field(default_factory=list)
    platforms: List[str] = field(default_factory=lambda: list(DEFAULT_PLATFORMS))
    brands: Dict[str, BrandMarkers] = field(default_factory=dict)
    espresso_max_amount: float = 5.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "DisplayVocabulary":
        delivery = cfg.get("delivery") or {}
        return cls(
            chains=[c.lower() for c in cfg.get("chains", [])],
            equipment=[e.lower() for e in cfg.get("equipment", [])],
            delivery_merchant=[m.lower() for m in delivery.get("merchant", [])],
            delivery_description=[d.lower() for d in delivery.get("description", [])],
            platforms=list(cfg.get("platforms", DEFAULT_PLATFORMS)),
            brands={
                str(name).lower(): BrandMarkers.from_config(markers or {})
                for name, markers in (cfg.get("brands") or {}).items()
            },
            espresso_max_amount=float(cfg.get("espresso_max_amount", 5.0)),
        )


class DisplayFilters:
    def __init__(self, vocab: DisplayVocabulary):
        self.vocab = vocab

    @staticmethod
    def _texts(t: CoffeeTransaction):
        return (t.merchant or "").lower(), (t.description or "").lower()

    def is_chain(self, t: CoffeeTransaction) -> bool:
        merchant, desc = self._texts(t)
        if t.is_known_chain_account:
            return True
        return any(c in merchant or c in desc for c in self.vocab.chains)

    def is_equipment(self, t: CoffeeTransaction) -> bool:
        _, desc = self._texts(t)
        return any(e in desc for e in self.vocab.equipment)

    def is_delivery(self, t: CoffeeTransaction) -> bool:
        merchant, desc = self._texts(t)
        if t.is_delivery_platform_account:
            return True
        return any(m in merchant for m in self.vocab.delivery_merchant) or any(
            d in desc for d in self.vocab.delivery_description
        )

    def is_beans(self, t: CoffeeTransaction) -> bool:
        return t.is_beans

    def brand_names(self) -> List[str]:
        return list(self.vocab.brands)

    def is_brand(self, t: CoffeeTransaction, brand: str) -> bool:
        """Merchant, description, account or a matched keyword carries the brand's marker."""
        markers: Optional[BrandMarkers] = self.vocab.brands.get(brand.lower())
        if markers is None:
            raise ValueError(f"unknown brand {brand!r}; known: {self.brand_names()}")
        merchant, desc = self._texts(t)
        account = (t.account or "").lower()
        return (
            any(m in merchant for m in markers.merchant)
            or any(d in desc for d in markers.description)
            or any(a in account for a in markers.accounts)
            or any(k in kw.lower() for kw in t.matched_keywords for k in markers.keywords)
        )

    def is_manner(self, t: CoffeeTransaction, espresso_only: bool = False) -> bool:
        if not self.is_brand(t, "manner"):
            return False
        return not espresso_only or t.amount <= self.vocab.espresso_max_amount

    def is_grid(self, t: CoffeeTransaction) -> bool:
        return self.is_brand(t, "grid")

    def is_dozzze(self, t: CoffeeTransaction) -> bool:
        return self.is_brand(t, "dozzze")

    def is_hans(self, t: CoffeeTransaction) -> bool:
        return self.is_brand(t, "hans")

    def brand_filter(
        self, brand: str, espresso_only: bool = False
    ) -> Callable[[CoffeeTransaction], bool]:
        """Predicate for `filter_by_date`; espresso_only applies to Manner."""
        if brand.lower() == "manner":
            return lambda t: self.is_manner(t, espresso_only=espresso_only)
        if brand.lower() not in self.vocab.brands:
            raise ValueError(f"unknown brand {brand!r}; known: {self.brand_names()}")
        return lambda t: self.is_brand(t, brand)

    def is_independent_cafe(self, t: CoffeeTransaction) -> bool:
        return not (
            self.is_chain(t) or t.is_beans or self.is_equipment(t) or self.is_delivery(t)
        )

    def cafe_names(self, by_date: CoffeeDataByDate) -> List[str]:
        """Sorted unique display names of non-chain, non-bean, non-equipment cafes."""
        names = set()
        for bucket in by_date.values():
            for t in bucket:
                if self.is_chain(t) or t.is_beans or self.is_equipment(t):
                    continue
                name = cafe_name(t, self.vocab.platforms)
                if name and name != UNKNOWN_CAFE and not any(
                    p in name for p in self.vocab.platforms
                ):
                    names.add(name)
        return sorted(names)

    def bean_merchants(self, by_date: CoffeeDataByDate) -> List[str]:
        names = {
            t.merchant
            for bucket in by_date.values()
            for t in bucket
            if t.is_beans and t.merchant and len(t.merchant) > 1
        }
        return sorted(names)


def filter_by_date(
    by_date: CoffeeDataByDate, keep: Callable[[CoffeeTransaction], bool]
) -> CoffeeDataByDate:
    """Apply `keep` per transaction; dates left empty are dropped."""
    out: CoffeeDataByDate = {}
    for date, bucket in by_date.items():
        kept = [t for t in bucket if keep(t)]
        if kept:
            out[date] = kept
    return out
