# categorizer/rules.py
"""
Keyword rule engine for coffee detection.

The ruleset is plain data (see config/coffee_rules.yaml):
- Guards: named predicates ("merchant looks like a restaurant") evaluated once
- Passes: ordered keyword lists scanned against one or more text fields,
  each hit adding a fixed score and recording the keyword
- Skips: keyword-specific suppressions referencing guards
- Overrides: post-scan confidence resets (coffee-flavoured food)

Scores accumulate across passes; keywords are de-duplicated by exact string.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

CJK_RX = re.compile(r"[一-龥]")

MODES = ("exact", "icase", "auto", "regex")
FIELDS = ("merchant", "merchant_lower", "description", "account")


@dataclass(frozen=True)
class TextView:
    """Text fields of one transaction, folded once for matching."""

    merchant: str = ""
    merchant_lower: str = ""
    description: str = ""
    account: str = ""

    @classmethod
    def of(cls, txn: Any) -> "TextView":
        merchant = getattr(txn, "merchant", "") or ""
        return cls(
            merchant=merchant,
            merchant_lower=merchant.lower(),
            description=(getattr(txn, "description", "") or "").lower(),
            account=(getattr(txn, "account", "") or "").lower(),
        )

    def get(self, name: str) -> str:
        return getattr(self, name, "")


def keyword_in(keyword: str, text: str, mode: str = "exact") -> bool:
    """Substring (or regex) test of one keyword against one text."""
    if not text or not keyword:
        return False
    if mode == "regex":
        return re.search(keyword, text) is not None
    if mode == "auto":
        mode = "exact" if CJK_RX.search(keyword) else "icase"
    if mode == "icase":
        return keyword.lower() in text.lower()
    return keyword in text


@dataclass
class Guard:
    """A named yes/no predicate over the transaction text."""

    name: str
    keywords: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=lambda: ["merchant"])
    mode: str = "exact"

    def check(self, view: TextView) -> bool:
        return any(
            keyword_in(k, view.get(f), self.mode)
            for k in self.keywords
            for f in self.fields
        )


@dataclass
class Skip:
    """Ignore `keyword` when every `when` guard holds and no `unless` guard does."""

    keyword: str
    when: List[str] = field(default_factory=list)
    unless: List[str] = field(default_factory=list)

    def applies(self, keyword: str, guards: Dict[str, bool]) -> bool:
        if keyword != self.keyword:
            return False
        if not all(guards.get(g, False) for g in self.when):
            return False
        return not any(guards.get(g, False) for g in self.unless)


@dataclass
class KeywordPass:
    """One ordered scan of a keyword list over some fields."""

    name: str
    keywords: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=lambda: ["merchant"])
    mode: str = "exact"
    score: float = 0.0
    first_match_only: bool = False
    emit: Optional[str] = None  # record this token instead of the keyword
    unless_matched: List[str] = field(default_factory=list)
    skips: List[Skip] = field(default_factory=list)

    def hits(self, keyword: str, view: TextView) -> bool:
        return any(keyword_in(keyword, view.get(f), self.mode) for f in self.fields)

    def is_skipped(self, keyword: str, guards: Dict[str, bool]) -> bool:
        return any(s.applies(keyword, guards) for s in self.skips)

    def blocked_by(self, matched: List[str]) -> bool:
        """True if an earlier keyword already signals what this pass looks for."""
        return any(u.lower() in k.lower() for k in matched for u in self.unless_matched)

    def run(
        self, view: TextView, guards: Dict[str, bool], matched: List[str]
    ) -> float:
        """Scan keywords in order, append new tokens to `matched`, return score gained."""
        gained = 0.0
        for kw in self.keywords:
            if not self.hits(kw, view):
                continue
            if self.is_skipped(kw, guards):
                continue
            if self.emit is not None:
                if self.emit not in matched and not self.blocked_by(matched):
                    matched.append(self.emit)
                    gained += self.score
                break
            if self.unless_matched and self.blocked_by(matched):
                continue
            if kw in matched:
                if self.first_match_only:
                    break
                continue
            matched.append(kw)
            gained += self.score
            if self.first_match_only:
                break
        return gained


@dataclass
class Override:
    """Reset confidence when the matched set is exactly `only_keywords`."""

    name: str
    when: List[str] = field(default_factory=list)
    below: float = 1.0
    only_keywords: Optional[List[str]] = None
    set_confidence: float = 0.0

    def applies(
        self, guards: Dict[str, bool], confidence: float, matched: List[str]
    ) -> bool:
        if not all(guards.get(g, False) for g in self.when):
            return False
        if not confidence < self.below:
            return False
        if self.only_keywords is not None and matched != list(self.only_keywords):
            return False
        return True


@dataclass
class Ruleset:
    threshold: float = 0.5
    guards: Dict[str, Guard] = field(default_factory=dict)
    passes: List[KeywordPass] = field(default_factory=list)
    overrides: List[Override] = field(default_factory=list)

    def eval_guards(self, view: TextView) -> Dict[str, bool]:
        return {name: g.check(view) for name, g in self.guards.items()}


@dataclass
class Score:
    confidence: float
    matched_keywords: List[str]
    fired: List[str] = field(default_factory=list)  # pass/override names, for audit


def evaluate(ruleset: Ruleset, view: TextView) -> Score:
    """
    Run every pass in order, then the overrides.
    The returned confidence is raw (not clamped).
    """
    guards = ruleset.eval_guards(view)
    matched: List[str] = []
    fired: List[str] = []
    confidence = 0.0

    for p in ruleset.passes:
        gained = p.run(view, guards, matched)
        if gained:
            confidence += gained
            fired.append(p.name)

    for o in ruleset.overrides:
        if o.applies(guards, confidence, matched):
            confidence = o.set_confidence
            fired.append(o.name)

    return Score(confidence=confidence, matched_keywords=matched, fired=fired)


# ---------------- Parsing from YAML config ----------------


def _check_mode(mode: str, where: str) -> str:
    if mode not in MODES:
        raise ValueError(f"{where}: unknown match mode {mode!r}")
    return mode


def _check_fields(fields: List[str], where: str) -> List[str]:
    bad = [f for f in fields if f not in FIELDS]
    if bad:
        raise ValueError(f"{where}: unknown field(s) {bad}")
    return list(fields)


def _check_refs(names: List[str], guards: Dict[str, Guard], where: str) -> List[str]:
    missing = [n for n in names if n not in guards]
    if missing:
        raise ValueError(f"{where}: unknown guard(s) {missing}")
    return list(names)


def parse_guard(name: str, g: Dict[str, Any]) -> Guard:
    where = f"guard {name}"
    return Guard(
        name=name,
        keywords=[str(k) for k in g.get("any", [])],
        fields=_check_fields(g.get("fields", ["merchant"]), where),
        mode=_check_mode(g.get("mode", "exact"), where),
    )


def parse_pass(p: Dict[str, Any], guards: Dict[str, Guard]) -> KeywordPass:
    name = p.get("name", "unnamed")
    where = f"pass {name}"
    skips = [
        Skip(
            keyword=str(s["keyword"]),
            when=_check_refs(s.get("when", []), guards, where),
            unless=_check_refs(s.get("unless", []), guards, where),
        )
        for s in p.get("skips", [])
    ]
    return KeywordPass(
        name=name,
        keywords=[str(k) for k in p.get("keywords", [])],
        fields=_check_fields(p.get("fields", ["merchant"]), where),
        mode=_check_mode(p.get("mode", "exact"), where),
        score=float(p.get("score", 0.0)),
        first_match_only=bool(p.get("first_match_only", False)),
        emit=p.get("emit"),
        unless_matched=[str(u) for u in p.get("unless_matched", [])],
        skips=skips,
    )


def parse_override(o: Dict[str, Any], guards: Dict[str, Guard]) -> Override:
    name = o.get("name", "unnamed")
    only = o.get("only_keywords")
    return Override(
        name=name,
        when=_check_refs(o.get("when", []), guards, f"override {name}"),
        below=float(o.get("below", 1.0)),
        only_keywords=[str(k) for k in only] if only is not None else None,
        set_confidence=float(o.get("set_confidence", 0.0)),
    )


def compile_ruleset(cfg: Dict[str, Any]) -> Ruleset:
    """Compile guards, passes and overrides from a config dict."""
    guards = {
        name: parse_guard(name, g) for name, g in (cfg.get("guards") or {}).items()
    }
    return Ruleset(
        threshold=float(cfg.get("threshold", 0.5)),
        guards=guards,
        passes=[parse_pass(p, guards) for p in cfg.get("passes") or []],
        overrides=[parse_override(o, guards) for o in cfg.get("overrides") or []],
    )


def summarize(ruleset: Ruleset) -> List[Tuple[str, int, float]]:
    """(pass name, keyword count, score) per pass, in evaluation order."""
    return [(p.name, len(p.keywords), p.score) for p in ruleset.passes]
