# categorizer/service.py
"""
Categorizer service: loads the rule YAML and wires the coffee and bean
classifiers together.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from categorizer.beans import BeanClassifier, BeanVocabulary
from categorizer.coffee import (
    Classification,
    CoffeeClassifier,
    detect_coffee,
    filter_coffee,
)
from categorizer.rules import compile_ruleset
from cd_core.models import CoffeeTransaction, Transaction
from config.loader import DEFAULT_RULES

log = logging.getLogger("categorizer")


def resolve_rules_path(rules_path: Optional[str] = None) -> Path:
    """The rules YAML actually used: `rules_path` if it exists, else the bundled one."""
    p = Path(rules_path) if rules_path else DEFAULT_RULES
    if not p.exists():
        log.info("Rules file not found at %s; using %s", p, DEFAULT_RULES)
        p = DEFAULT_RULES
    return p


def load_rules(rules_path: Optional[str] = None) -> Dict[str, Any]:
    """Read a rules YAML; fall back to the bundled one when path is missing."""
    p = resolve_rules_path(rules_path)
    with open(p, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class CategorizerService:
    """Rule-based coffee/bean categorization of canonical transactions."""

    def __init__(
        self, rules_path: Optional[str] = None, cfg: Optional[Dict[str, Any]] = None
    ):
        self.cfg = cfg if cfg is not None else load_rules(rules_path)
        self.coffee = CoffeeClassifier(compile_ruleset(self.cfg))
        self.beans = BeanClassifier(BeanVocabulary.from_config(self.cfg.get("beans") or {}))

    def classify(self, txn: Transaction) -> Classification:
        return self.coffee.classify(txn)

    def categorize(self, txn: Transaction) -> CoffeeTransaction:
        return detect_coffee(txn, self.coffee, self.beans)

    def categorize_batch(self, txns: Iterable[Transaction]) -> List[CoffeeTransaction]:
        out = [self.categorize(t) for t in txns]
        log.info(
            "Classified %d transaction(s): %d coffee",
            len(out),
            sum(1 for t in out if t.is_coffee),
        )
        return out

    def coffee_only(self, txns: Iterable[Transaction]) -> List[CoffeeTransaction]:
        return filter_coffee(self.categorize_batch(txns))

    def section(self, name: str) -> Dict[str, Any]:
        """A non-rule config section (privacy, display)."""
        return self.cfg.get(name) or {}

    def get_rule_count(self) -> int:
        return sum(len(p.keywords) for p in self.coffee.ruleset.passes)
