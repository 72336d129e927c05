# dashboard.py - KPI cards and charts for the Panel and Reportes tabs

import streamlit as st
import plotly.express as px
import plotly.graph_objects as go
import pandas as pd

from insights import category_breakdown, daily_expense_trend

COLORS = ["#0A84FF", "#FF375F", "#30D158", "#FF9F0A", "#BF5AF2", "#64D2FF"]

MONTH_NAMES_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
    "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


def _prep(df):
    """
    Prepares the dataframe for dashboarding.
    """
    if df.empty:
        df = df.copy()
        df["Month"] = pd.Series(dtype=str)
        return df

    df = df.copy()
    df["Date"] = pd.to_datetime(df["Date"])
    df["Month"] = df["Date"].dt.to_period("M").astype(str)

    # Ensure Amount is numeric
    df["Amount"] = pd.to_numeric(df["Amount"], errors="coerce").fillna(0)
    df["Category"] = df["Category"].fillna("Otros").replace("", "Otros")
    return df


def format_money(value: float) -> str:
    """es-AR style: '$ 1.234,5'."""
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    if text.endswith(",00"):
        text = text[:-3]
    elif text.endswith("0") and "," in text:
        text = text[:-1]
    return f"$ {text}"


def month_label(key: str) -> str:
    """'2026-10' -> 'octubre 2026'."""
    year, month = key.split("-")
    return f"{MONTH_NAMES_ES[int(month) - 1]} {year}"


def _kpis(totals: dict):
    """
    Expense / income cards plus the net balance of the month.
    """
    col1, col2 = st.columns(2)
    col1.metric("🎯 Gastos", format_money(totals["expense"]))
    col2.metric("💵 Ingresos", f"+{format_money(totals['income'])}")

    balance = totals["balance"]
    st.metric(
        "Balance Neto",
        format_money(balance),
        delta="positivo" if balance >= 0 else "negativo",
        delta_color="normal" if balance >= 0 else "inverse",
    )


def summary_strip(totals: dict):
    c1, c2, c3 = st.columns(3)
    c1.metric("Ingresos", format_money(totals["income"]))
    c2.metric("Gastos", format_money(totals["expense"]))
    c3.metric("Balance", format_money(totals["balance"]))


def cat_spend(df):
    """
    Donut chart of the top five expense categories.
    """
    by_cat = category_breakdown(df, top_n=5)
    if by_cat.empty:
        return None

    fig = px.pie(
        by_cat,
        values="Amount",
        names="Category",
        hole=0.6,
        title="Gastos por categoría",
        color_discrete_sequence=COLORS,
    )
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def weekly_trend(df, today=None):
    """
    Bar chart of expenses over the last seven days.
    """
    daily = daily_expense_trend(df, today)

    fig = go.Figure()
    fig.add_trace(go.Bar(x=daily["Label"], y=daily["Amount"], name="Gastos", marker_color="#0A84FF"))
    fig.update_layout(title="Últimos 7 días", height=300, yaxis_visible=False)
    return fig
