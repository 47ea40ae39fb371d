# categorizer/beans.py
"""
Bean classifier: for a transaction already judged coffee, decide whether it
bought beans (retail product) rather than a brewed drink.

Evidence, in priority order:
  1. known roaster in merchant/description          -> beans, always
  2. cafe names containing the bean character       -> ignore the bare 豆 heuristic
  3. "bean shop" business names (咖啡豆店 ...)       -> not evidence, and vetoes the rest
  4. literal 咖啡豆
  5. bare 豆, unless part of a cafe descriptor (咖啡店, 咖啡厅, 咖啡·)
  6. pour-over venue names (手冲咖啡店) without 豆     -> vetoes the rest
  7. blend/拼配 counts only next to a bean phrase, never next to a drink name
  8. weight units count only after digits (250g, 1kg)
  9. any other vocabulary term (origin, process, roast level)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from cd_core.models import Transaction


@dataclass
class BeanVocabulary:
    known_roasters: List[str] = field(default_factory=list)
    cafe_names_with_bean: List[str] = field(default_factory=list)
    bean_shop_descriptors: List[str] = field(default_factory=list)
    bean_literal: str = "咖啡豆"
    bean_char: str = "豆"
    cafe_descriptors: List[str] = field(default_factory=list)
    pour_over_venues: List[str] = field(default_factory=list)
    pour_over_keywords: List[str] = field(default_factory=list)
    pour_over_requires: List[str] = field(default_factory=list)
    blend_keywords: List[str] = field(default_factory=list)
    blend_drink_suffixes: List[str] = field(default_factory=list)
    blend_requires: List[str] = field(default_factory=list)
    weight_units: List[str] = field(default_factory=lambda: ["kg", "g"])
    vocabulary: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "BeanVocabulary":
        pour = cfg.get("pour_over") or {}
        blend = cfg.get("blend") or {}
        return cls(
            known_roasters=list(cfg.get("known_roasters", [])),
            cafe_names_with_bean=list(cfg.get("cafe_names_with_bean", [])),
            bean_shop_descriptors=list(cfg.get("bean_shop_descriptors", [])),
            bean_literal=str(cfg.get("bean_literal", "咖啡豆")),
            bean_char=str(cfg.get("bean_char", "豆")),
            cafe_descriptors=list(cfg.get("cafe_descriptors", [])),
            pour_over_venues=list(pour.get("venues", [])),
            pour_over_keywords=list(pour.get("keywords", [])),
            pour_over_requires=list(pour.get("requires_any", [])),
            blend_keywords=list(blend.get("keywords", [])),
            blend_drink_suffixes=list(blend.get("drink_suffixes", [])),
            blend_requires=list(blend.get("requires_any", [])),
            weight_units=list(cfg.get("weight_units", ["kg", "g"])),
            vocabulary=list(cfg.get("vocabulary", [])),
        )


@dataclass
class BeanDecision:
    is_beans: bool
    reasons: List[str] = field(default_factory=list)


def _alternation(words: List[str]) -> str:
    # longest first so "kg" wins over "g"
    return "|".join(re.escape(w.lower()) for w in sorted(words, key=len, reverse=True))


class BeanClassifier:
    def __init__(self, vocab: BeanVocabulary):
        self.vocab = vocab
        self._weight_rx = (
            re.compile(rf"\d+(?:{_alternation(vocab.weight_units)})(?![a-z])")
            if vocab.weight_units
            else None
        )
        if vocab.blend_keywords and vocab.blend_drink_suffixes:
            self._blend_drink_rx = re.compile(
                rf"(?:{_alternation(vocab.blend_keywords)})\s*"
                rf"(?:{_alternation(vocab.blend_drink_suffixes)})"
            )
        else:
            self._blend_drink_rx = None

    def classify(self, txn: Transaction) -> bool:
        return self.explain(txn).is_beans

    def explain(self, txn: Transaction) -> BeanDecision:
        if getattr(txn, "is_coffee", True) is False:
            return BeanDecision(False, ["not-coffee"])

        v = self.vocab
        merchant = txn.merchant or ""
        desc = (txn.description or "").lower()
        all_text = f"{merchant} {desc} {txn.account or ''}".lower()

        def either(phrase: str) -> bool:
            return phrase in merchant or phrase in desc

        def either_any(phrases: List[str]) -> bool:
            return any(either(p) for p in phrases)

        reasons: List[str] = []

        if either_any(v.known_roasters):
            return BeanDecision(True, ["known-roaster"])

        cafe_name_guard = either_any(v.cafe_names_with_bean)
        shop_descriptor = either_any(v.bean_shop_descriptors)
        pour_over_cafe = either_any(v.pour_over_venues) and not either(v.bean_char)

        if shop_descriptor:
            return BeanDecision(False, ["bean-shop-name"])
        if pour_over_cafe:
            return BeanDecision(False, ["pour-over-cafe"])

        if either(v.bean_literal):
            reasons.append("literal")

        if not cafe_name_guard:
            for text in (desc, merchant):
                if v.bean_char in text and not any(
                    cd in text for cd in v.cafe_descriptors
                ):
                    reasons.append("bean-char")
                    break

        if any(k.lower() in all_text for k in v.pour_over_keywords) and any(
            r.lower() in all_text for r in v.pour_over_requires
        ):
            reasons.append("pour-over-beans")

        blend_drink = bool(self._blend_drink_rx and self._blend_drink_rx.search(all_text))
        if (
            not blend_drink
            and any(k.lower() in all_text for k in v.blend_keywords)
            and any(r.lower() in all_text for r in v.blend_requires)
        ):
            reasons.append("blend-beans")

        if self._weight_rx is not None and self._weight_rx.search(all_text):
            reasons.append("weight")

        hit = next((w for w in v.vocabulary if w.lower() in all_text), None)
        if hit is not None:
            reasons.append(f"vocabulary:{hit}")

        return BeanDecision(bool(reasons), reasons)
