from datetime import date, datetime

import pandas as pd

from dashboard import _prep, cat_spend, format_money, month_label, weekly_trend
from ledger import load_data


def test_format_money_uses_argentine_separators():
    assert format_money(1234.5) == "$ 1.234,5"
    assert format_money(180000) == "$ 180.000"
    assert format_money(0) == "$ 0"
    assert format_money(99.99) == "$ 99,99"


def test_month_label():
    assert month_label("2026-10") == "octubre 2026"
    assert month_label("2027-01") == "enero 2027"


def test_prep_empty_frame_keeps_columns(db):
    df = _prep(load_data(db))
    assert df.empty
    assert "Month" in df.columns
    assert "Amount" in df.columns


def test_prep_adds_month_and_fills_category(db, add_tx):
    add_tx(date=datetime(2026, 9, 30, 22, 0), category="")
    df = _prep(load_data(db))
    assert df["Month"].tolist() == ["2026-09"]
    assert df["Category"].tolist() == ["Otros"]


def test_cat_spend_without_expenses_returns_none(db, add_tx):
    assert cat_spend(_prep(load_data(db))) is None
    add_tx(type="INCOME", category="Ingreso", amount=5000)
    assert cat_spend(_prep(load_data(db))) is None


def test_cat_spend_builds_donut(db, add_tx):
    add_tx(category="Alimentación", amount=3000)
    add_tx(category="Transporte", amount=1000)
    fig = cat_spend(_prep(load_data(db)))
    trace = fig.data[0]
    assert trace.hole == 0.6
    assert list(trace.labels) == ["Alimentación", "Transporte"]


def test_weekly_trend_has_seven_bars(db, add_tx):
    add_tx(date=datetime(2026, 10, 19, 9, 0), amount=250)
    fig = weekly_trend(_prep(load_data(db)), date(2026, 10, 19))
    bars = fig.data[0]
    assert len(bars.x) == 7
    assert list(bars.y)[-1] == 250
    assert fig.layout.title.text == "Últimos 7 días"


def test_weekly_trend_on_empty_frame():
    empty = _prep(pd.DataFrame(columns=["ID", "Date", "Amount", "Type", "Category", "Tags"]))
    fig = weekly_trend(empty, date(2026, 10, 19))
    assert list(fig.data[0].y) == [0.0] * 7
