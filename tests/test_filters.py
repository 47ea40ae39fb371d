# tests/test_filters.py
from dataclasses import replace

import pytest

from conftest import make_coffee
from pipeline.aggregate import group_by_date
from pipeline.filters import DisplayFilters, DisplayVocabulary, filter_by_date


@pytest.fixture(scope="module")
def filters(rules_cfg):
    return DisplayFilters(DisplayVocabulary.from_config(rules_cfg["display"]))


@pytest.fixture
def by_date():
    return group_by_date(
        [
            make_coffee("Manner Coffee", "2025-03-01", "08:00:00"),
            make_coffee("Seesaw Coffee", "2025-03-01", "09:00:00"),
            make_coffee("白鲸咖啡", "2025-03-02", is_beans=True),
            make_coffee("某某咖啡", "2025-03-03", description="V60 滤纸 100张"),
            make_coffee("美团", "2025-03-04", description="小岛咖啡(三里屯店)"),
            make_coffee("某店", "2025-03-05", account="x.starbucks.com", is_known_chain_account=True),
        ]
    )


def test_vocabulary_is_lowercased(rules_cfg):
    vocab = DisplayVocabulary.from_config(rules_cfg["display"])
    assert "dozzze" in vocab.chains
    assert vocab.platforms == ["淘宝", "美团"]


def test_is_chain(filters):
    assert filters.is_chain(make_coffee("Manner Coffee"))
    assert filters.is_chain(make_coffee("瑞幸咖啡"))
    assert filters.is_chain(make_coffee("某店", is_known_chain_account=True))
    assert not filters.is_chain(make_coffee("Seesaw Coffee"))


def test_is_equipment(filters):
    assert filters.is_equipment(make_coffee("某某咖啡", description="V60 滤纸"))
    assert not filters.is_equipment(make_coffee("某某咖啡", description="拿铁"))


def test_is_delivery(filters):
    assert filters.is_delivery(make_coffee("美团", description="拿铁"))
    assert filters.is_delivery(make_coffee("某店", description="外卖订单"))
    assert filters.is_delivery(make_coffee("某店", is_delivery_platform_account=True))
    assert not filters.is_delivery(make_coffee("Seesaw Coffee"))


def test_is_independent_cafe(filters):
    assert filters.is_independent_cafe(make_coffee("Seesaw Coffee"))
    assert not filters.is_independent_cafe(make_coffee("Manner Coffee"))
    assert not filters.is_independent_cafe(make_coffee("某某", is_beans=True))
    assert filters.is_beans(make_coffee("某某", is_beans=True))


def test_cafe_names(filters, by_date):
    # delivery orders still contribute the cafe named in the description
    assert filters.cafe_names(by_date) == ["Seesaw Coffee", "小岛咖啡"]


def test_bean_merchants(filters, by_date):
    assert filters.bean_merchants(by_date) == ["白鲸咖啡"]


def test_filter_by_date_drops_empty_dates(filters, by_date):
    chains = filter_by_date(by_date, filters.is_chain)
    # 白鲸 is listed as a chain as well as a roaster
    assert list(chains) == ["2025-03-01", "2025-03-02", "2025-03-05"]
    assert [t.merchant for t in chains["2025-03-01"]] == ["Manner Coffee"]
    assert filter_by_date(by_date, lambda t: False) == {}


def test_brand_vocabulary(filters):
    assert set(filters.brand_names()) == {"manner", "grid", "dozzze", "hans"}
    assert filters.vocab.espresso_max_amount == 5.0
    assert "茵赫" in filters.vocab.brands["manner"].merchant


class TestBrands:
    def test_is_manner_by_merchant_account_or_keyword(self, filters):
        assert filters.is_manner(make_coffee("Manner Coffee"))
        assert filters.is_manner(make_coffee("北京茵赫餐饮管理有限公司"))
        assert filters.is_manner(make_coffee("某店", account="mannercoffee.com.cn"))
        kw = replace(make_coffee("某店"), matched_keywords=["manner"])
        assert filters.is_manner(kw)
        assert not filters.is_manner(make_coffee("Seesaw Coffee"))

    def test_other_chain_account_is_not_manner(self, filters):
        starbucks = make_coffee("星巴克", account="starbucks.com.cn", is_known_chain_account=True)
        assert filters.is_chain(starbucks)
        assert not filters.is_manner(starbucks)

    def test_manner_espresso_only(self, filters):
        latte = make_coffee("Manner Coffee", amount=15.0)
        shot = make_coffee("Manner Coffee", amount=4.0)
        edge = make_coffee("Manner Coffee", amount=5.0)
        assert filters.is_manner(latte)
        assert not filters.is_manner(latte, espresso_only=True)
        assert filters.is_manner(shot, espresso_only=True)
        assert filters.is_manner(edge, espresso_only=True)
        assert not filters.is_manner(make_coffee("Seesaw Coffee", amount=4.0), espresso_only=True)

    def test_is_grid(self, filters):
        assert filters.is_grid(make_coffee("GRID COFFEE"))
        assert filters.is_grid(make_coffee("美团", description="Grid Coffee 三里屯"))
        assert filters.is_grid(replace(make_coffee("某店"), matched_keywords=["grid"]))
        assert not filters.is_grid(make_coffee("Manner Coffee"))

    def test_is_dozzze(self, filters):
        assert filters.is_dozzze(make_coffee("DOzzZE Coffee"))
        assert filters.is_dozzze(make_coffee("豆仔咖啡"))
        assert filters.is_dozzze(make_coffee("美团", description="豆仔 冰美式"))
        assert not filters.is_dozzze(make_coffee("Seesaw Coffee"))

    def test_is_hans(self, filters):
        assert filters.is_hans(make_coffee("憨憨咖啡"))
        assert filters.is_hans(make_coffee("Hans Coffee"))
        assert not filters.is_hans(make_coffee("瑞幸咖啡"))

    def test_unknown_brand(self, filters):
        with pytest.raises(ValueError, match="unknown brand"):
            filters.is_brand(make_coffee("Costa"), "costa")
        with pytest.raises(ValueError, match="unknown brand"):
            filters.brand_filter("costa")

    def test_brand_filter_by_date(self, filters, by_date):
        manner = filter_by_date(by_date, filters.brand_filter("manner"))
        assert list(manner) == ["2025-03-01"]
        assert [t.merchant for t in manner["2025-03-01"]] == ["Manner Coffee"]
        assert filter_by_date(by_date, filters.brand_filter("Manner", espresso_only=True)) == {}
        assert filter_by_date(by_date, filters.brand_filter("hans")) == {}
