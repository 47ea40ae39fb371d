# tests/conftest.py
import pytest

from categorizer.service import CategorizerService, load_rules
from cd_core.models import CoffeeTransaction, Source, Transaction

ALIPAY_HEADER = (
    "交易时间,交易分类,交易对方,对方账号,商品说明,收/支,金额,"
    "收/付款方式,交易状态,交易订单号,商家订单号,备注"
)

ALIPAY_ROWS = [
    "2025-03-01 08:15:02,餐饮美食,Manner Coffee,mannercoffee.com.cn,拿铁,支出,15.00,余额宝,交易成功,T001 ,M001 ,",
    "2025-03-01 07:59:10,餐饮美食,星巴克,starbucks.com.cn,美式咖啡,支出,\"1,030.00\",花呗,交易成功,T002,M002,",
    "2025-03-02 12:00:00,餐饮美食,川味老妈蹄花餐厅,,蹄花汤,支出,45.00,花呗,交易成功,T003,M003,",
    "2025-03-03 09:00:00,转账红包,张三,zhang@example.com,转账,收入,100.00,余额,交易成功,T004,M004,",
    "2024-12-31 09:00:00,餐饮美食,星巴克,,拿铁,支出,30.00,花呗,交易成功,T005,M005,",
    "not-a-date,餐饮美食,星巴克,,拿铁,支出,30.00,花呗,交易成功,T006,M006,",
    "2025-03-04 10:00:00,餐饮美食,星巴克",
]


def _alipay_lines(rows):
    preamble = [f"# preamble line {i}" for i in range(1, 25)]
    return preamble + [ALIPAY_HEADER] + list(rows)


@pytest.fixture
def alipay_csv(tmp_path):
    """Alipay-style export: GBK, header on line 25."""
    p = tmp_path / "alipay_record_2025.csv"
    p.write_bytes("\n".join(_alipay_lines(ALIPAY_ROWS)).encode("gbk"))
    return p


WECHAT_HEADER = [
    "交易时间", "交易类型", "交易对方", "商品", "收/支", "金额(元)",
    "支付方式", "当前状态", "交易单号", "商户单号", "备注",
]

WECHAT_ROWS = [
    ["2025-04-01 13:58:02", "商户消费", "Grid Coffee", "Dirty", "支出", "¥28.00",
     "零钱", "支付成功", "W001", "WM001", "/"],
    ["2025-04-02 09:10:00", "商户消费", "白鲸咖啡", "耶加雪菲 200g", "支出", "¥98.00",
     "零钱", "支付成功", "W002", "WM002", "/"],
    ["2025-04-03 18:00:00", "微信红包", "李四", "/", "收入", "¥20.00",
     "/", "已存入零钱", "W003", "WM003", "/"],
    ["/", "", "", "", "", "", "", "", "", "", ""],
]


@pytest.fixture
def wechat_xlsx(tmp_path):
    """WeChat Pay-style workbook: preamble rows, then the header row."""
    pd = pytest.importorskip("pandas")
    pytest.importorskip("openpyxl")
    preamble = [["微信支付账单明细"] + [""] * 10, ["微信昵称：[coffee]"] + [""] * 10]
    rows = preamble + [[""] * 11] + [WECHAT_HEADER] + WECHAT_ROWS
    p = tmp_path / "wechat_2025Q2.xlsx"
    pd.DataFrame(rows).to_excel(p, header=False, index=False)
    return p


@pytest.fixture(scope="session")
def rules_cfg():
    return load_rules()


@pytest.fixture(scope="session")
def service(rules_cfg):
    return CategorizerService(cfg=rules_cfg)


def make_txn(
    merchant: str = "",
    description: str = "",
    account: str = "",
    date: str = "2025-03-01",
    time: str = "08:00:00",
    amount: float = 20.0,
    **kw,
) -> Transaction:
    return Transaction(
        date=date,
        time=time,
        merchant=merchant,
        description=description,
        account=account,
        amount=amount,
        source=kw.pop("source", Source.ALIPAY),
        **kw,
    )


def make_coffee(
    merchant: str = "Cafe",
    date: str = "2025-03-01",
    time: str = "08:00:00",
    amount: float = 20.0,
    is_beans: bool = False,
    **kw,
) -> CoffeeTransaction:
    return CoffeeTransaction(
        date=date,
        time=time,
        merchant=merchant,
        description=kw.pop("description", ""),
        account=kw.pop("account", ""),
        amount=amount,
        is_coffee=True,
        confidence=1.0,
        matched_keywords=["coffee"],
        is_beans=is_beans,
        **kw,
    )
