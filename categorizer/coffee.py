# categorizer/coffee.py
"""
Coffee classifier: decides whether a payment record is a coffee purchase.

Scoring (see config/coffee_rules.yaml for the vocabularies):
  merchant name   +0.8  first hit only, in priority order
  account domain  +0.9  once, unless a brand keyword already matched
  english terms   +0.6  each new keyword
  chinese terms   +0.7  each new keyword
then the coffee-flavoured-food override, clamp to [0, 1] and a strict
`confidence > threshold` decision.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List

from categorizer.beans import BeanClassifier
from categorizer.rules import Ruleset, TextView, evaluate
from cd_core.models import CoffeeTransaction, Transaction

log = logging.getLogger("categorizer.coffee")


@dataclass
class Classification:
    is_coffee: bool
    confidence: float
    matched_keywords: List[str] = field(default_factory=list)
    fired: List[str] = field(default_factory=list)


class CoffeeClassifier:
    """Pure function of merchant/description/account text; never raises."""

    def __init__(self, ruleset: Ruleset):
        self.ruleset = ruleset

    def classify(self, txn: Transaction) -> Classification:
        score = evaluate(self.ruleset, TextView.of(txn))
        confidence = min(max(score.confidence, 0.0), 1.0)
        return Classification(
            is_coffee=confidence > self.ruleset.threshold,
            confidence=confidence,
            matched_keywords=score.matched_keywords,
            fired=score.fired,
        )


def transaction_fields(txn: Transaction) -> Dict[str, Any]:
    """Only the Transaction columns of a (possibly derived) record."""
    return {f.name: getattr(txn, f.name) for f in fields(Transaction)}


def detect_coffee(
    txn: Transaction, coffee: CoffeeClassifier, beans: BeanClassifier
) -> CoffeeTransaction:
    """Classify one transaction and attach the bean decision."""
    c = coffee.classify(txn)
    is_beans = c.is_coffee and beans.classify(txn)
    if is_beans:
        log.debug("beans: %s | %s", txn.merchant, txn.description)
    return CoffeeTransaction(
        **transaction_fields(txn),
        is_coffee=c.is_coffee,
        confidence=c.confidence,
        matched_keywords=list(c.matched_keywords),
        is_beans=is_beans,
    )


def detect_coffee_batch(
    txns: Iterable[Transaction], coffee: CoffeeClassifier, beans: BeanClassifier
) -> List[CoffeeTransaction]:
    return [detect_coffee(t, coffee, beans) for t in txns]


def filter_coffee(txns: Iterable[CoffeeTransaction]) -> List[CoffeeTransaction]:
    return [t for t in txns if t.is_coffee]
