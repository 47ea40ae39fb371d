# tests/test_rules_engine.py
"""
Tests for the generic keyword rule engine (guards, passes, skips, overrides).
"""
import pytest

from categorizer.rules import (
    TextView,
    compile_ruleset,
    evaluate,
    keyword_in,
    summarize,
)
from conftest import make_txn


class TestKeywordIn:
    def test_exact_is_case_sensitive(self):
        assert keyword_in("Manner", "Manner Coffee", "exact")
        assert not keyword_in("manner", "Manner Coffee", "exact")

    def test_icase(self):
        assert keyword_in("STARBUCKS", "starbucks coffee", "icase")

    def test_auto_picks_exact_for_cjk(self):
        assert keyword_in("咖啡", "小岛咖啡", "auto")
        assert keyword_in("Coffee", "seesaw coffee", "auto")

    def test_regex(self):
        assert keyword_in(r"\d+g", "250g", "regex")
        assert not keyword_in(r"\d+g", "g", "regex")

    def test_empty_text_never_matches(self):
        assert not keyword_in("coffee", "", "icase")
        assert not keyword_in("", "coffee", "icase")


class TestTextView:
    def test_folds_description_and_account_only(self):
        v = TextView.of(make_txn("Manner Coffee", "LATTE", "MannerCoffee.com"))
        assert v.merchant == "Manner Coffee"
        assert v.merchant_lower == "manner coffee"
        assert v.description == "latte"
        assert v.account == "mannercoffee.com"

    def test_none_fields_become_empty(self):
        class Bare:
            merchant = None
            description = None
            account = None

        v = TextView.of(Bare())
        assert v.merchant == v.description == v.account == ""


def _cfg(**extra):
    cfg = {
        "threshold": 0.5,
        "guards": {
            "pub": {"fields": ["merchant"], "mode": "icase", "any": ["pub"]},
            "drink": {"fields": ["description"], "any": ["latte"]},
        },
        "passes": [
            {
                "name": "names",
                "fields": ["merchant"],
                "mode": "icase",
                "score": 0.8,
                "first_match_only": True,
                "keywords": ["roasters", "coffee"],
                "skips": [{"keyword": "coffee", "when": ["pub"], "unless": ["drink"]}],
            },
            {
                "name": "terms",
                "fields": ["merchant", "description"],
                "mode": "icase",
                "score": 0.6,
                "keywords": ["coffee", "latte"],
            },
        ],
    }
    cfg.update(extra)
    return cfg


class TestPasses:
    def test_first_match_only_records_priority_keyword(self):
        rs = compile_ruleset(_cfg())
        s = evaluate(rs, TextView.of(make_txn("Coffee Roasters")))
        assert s.matched_keywords[0] == "roasters"
        # names +0.8 once, terms +0.6 for coffee
        assert s.confidence == pytest.approx(1.4)

    def test_skip_applies_when_guard_holds(self):
        rs = compile_ruleset(_cfg())
        s = evaluate(rs, TextView.of(make_txn("Coffee Pub", "beer")))
        # names pass skipped coffee; terms pass has no skip
        assert s.matched_keywords == ["coffee"]
        assert s.confidence == pytest.approx(0.6)
        assert s.fired == ["terms"]

    def test_unless_guard_lifts_skip(self):
        rs = compile_ruleset(_cfg())
        s = evaluate(rs, TextView.of(make_txn("Coffee Pub", "latte")))
        assert s.matched_keywords == ["coffee", "latte"]
        assert s.confidence == pytest.approx(0.8 + 0.6)

    def test_emit_records_synthetic_token_once(self):
        cfg = _cfg(
            passes=[
                {
                    "name": "domain",
                    "fields": ["account"],
                    "mode": "icase",
                    "score": 0.9,
                    "emit": "account-domain",
                    "keywords": ["beanery", "roast"],
                }
            ]
        )
        s = evaluate(compile_ruleset(cfg), TextView.of(make_txn(account="roast.beanery.com")))
        assert s.matched_keywords == ["account-domain"]
        assert s.confidence == pytest.approx(0.9)

    def test_unless_matched_blocks_pass(self):
        cfg = _cfg()
        cfg["passes"].append(
            {
                "name": "domain",
                "fields": ["account"],
                "mode": "icase",
                "score": 0.9,
                "emit": "account-domain",
                "unless_matched": ["coffee"],
                "keywords": ["coffee"],
            }
        )
        s = evaluate(compile_ruleset(cfg), TextView.of(make_txn("Coffee", account="coffee.com")))
        assert "account-domain" not in s.matched_keywords


class TestOverrides:
    def test_override_resets_confidence(self):
        cfg = _cfg(
            guards={"food": {"fields": ["description"], "any": ["cake"]}},
            overrides=[
                {
                    "name": "snack",
                    "when": ["food"],
                    "below": 0.8,
                    "only_keywords": ["coffee"],
                    "set_confidence": 0.0,
                }
            ],
        )
        for p in cfg["passes"]:
            p.pop("skips", None)
        rs = compile_ruleset(cfg)
        s = evaluate(rs, TextView.of(make_txn(description="coffee cake")))
        assert s.confidence == 0.0
        assert "snack" in s.fired

        # confidence above the ceiling: override does not apply
        s = evaluate(rs, TextView.of(make_txn(description="coffee latte cake")))
        assert s.confidence == pytest.approx(1.2)


class TestParsing:
    def test_unknown_guard_reference_rejected(self):
        cfg = _cfg()
        cfg["passes"][0]["skips"][0]["when"] = ["nope"]
        with pytest.raises(ValueError, match="unknown guard"):
            compile_ruleset(cfg)

    def test_unknown_mode_rejected(self):
        cfg = _cfg()
        cfg["passes"][1]["mode"] = "fuzzy"
        with pytest.raises(ValueError, match="match mode"):
            compile_ruleset(cfg)

    def test_unknown_field_rejected(self):
        cfg = _cfg()
        cfg["passes"][1]["fields"] = ["memo"]
        with pytest.raises(ValueError, match="field"):
            compile_ruleset(cfg)

    def test_empty_config_is_harmless(self):
        rs = compile_ruleset({})
        s = evaluate(rs, TextView.of(make_txn("Starbucks")))
        assert s.confidence == 0.0
        assert s.matched_keywords == []

    def test_summarize_bundled_rules(self, service):
        names = [name for name, _, _ in summarize(service.coffee.ruleset)]
        assert names == ["merchant_name", "account_domain", "english", "chinese"]
